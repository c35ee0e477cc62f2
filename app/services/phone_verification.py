"""
Phone number verification by SMS one-time code.

Lifecycle of a code for one number:

    request_code  -> pending (stored, SMS sent)
    confirm_code  -> verified   (match: number copied onto the requesting user, code deleted)
                  -> expired    (now >= expires_at, code deleted)
                  -> exhausted  (no attempts left, code deleted)
                  -> pending    (mismatch, one attempt consumed)

Only a digest of the code is stored. Requesting a new code replaces the
previous row for the number, so at most one code is ever valid. A pending
code never touches ``User.phone_number``; the number is written only once
the code is confirmed.
"""

from __future__ import annotations

import enum
import hashlib
import hmac
import logging
import secrets
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.user import User
from app.models.verification_code import VerificationCode
from app.services.credential_store import CredentialStore
from app.services.exceptions import (
    Conflict,
    DeliveryFailed,
    Exhausted,
    Expired,
    Mismatch,
    NotFound,
    VoipRejected,
)
from app.services.line_type_service import LineType, LineTypeLookup
from app.services.sms_service import SmsDeliveryError, SmsSender
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

MESSAGE_TEMPLATE = "Your verification code is {code}. It expires in {minutes} minutes."


class VerificationState(str, enum.Enum):
    pending = "pending"
    expired = "expired"
    exhausted = "exhausted"


class PhoneVerificationService:
    def __init__(
        self,
        db: Session,
        store: CredentialStore,
        sender: SmsSender,
        line_type_lookup: LineTypeLookup,
        config,
    ):
        self.db = db
        self.store = store
        self.sender = sender
        self.line_type_lookup = line_type_lookup
        self.code_length = config.PHONE_CODE_LENGTH
        self.ttl = timedelta(minutes=config.PHONE_CODE_TTL_MINUTES)
        self.max_attempts = config.PHONE_CODE_MAX_ATTEMPTS
        self.reject_voip = config.REJECT_VOIP_NUMBERS
        self._digest_key = (config.JWT_SECRET or "").encode("utf-8")

    def _generate_code(self) -> str:
        return str(secrets.randbelow(10 ** self.code_length)).zfill(self.code_length)

    def _digest(self, phone_number: str, code: str) -> str:
        message = f"{phone_number}:{code}".encode("utf-8")
        return hmac.new(self._digest_key, message, hashlib.sha256).hexdigest()

    def _live_code(self, record: VerificationCode):
        # matches only the row this request read, not a replacement issued since
        return self.db.query(VerificationCode).filter(
            VerificationCode.phone_number == record.phone_number,
            VerificationCode.code_hash == record.code_hash,
        )

    def reject_if_voip(self, phone_number: str) -> None:
        line_type = self.line_type_lookup.classify(phone_number)
        if line_type == LineType.voip:
            logger.warning("Rejected VoIP number for verification: %s", phone_number)
            raise VoipRejected()

    def request_code(self, phone_number: str, user_id: int | None = None) -> VerificationCode:
        """Issue a fresh code for ``phone_number`` and send it by SMS.

        Any earlier code for the number stops being valid, as does any other
        number ``user_id`` was still verifying. If the SMS cannot be delivered
        nothing is stored and ``DeliveryFailed`` is raised.
        """
        if user_id is not None:
            self.store.ensure_phone_available(user_id, phone_number)
        if self.reject_voip:
            self.reject_if_voip(phone_number)

        code = self._generate_code()
        for attempt in range(2):
            if user_id is not None:
                self.db.query(VerificationCode).filter(
                    VerificationCode.user_id == user_id,
                    VerificationCode.phone_number != phone_number,
                ).delete(synchronize_session=False)
            issued_at = utcnow()
            record = self.db.merge(
                VerificationCode(
                    phone_number=phone_number,
                    user_id=user_id,
                    code_hash=self._digest(phone_number, code),
                    issued_at=issued_at,
                    expires_at=issued_at + self.ttl,
                    attempts_remaining=self.max_attempts,
                )
            )
            try:
                self.db.flush()
            except IntegrityError:
                # another request inserted the row between our read and write
                self.db.rollback()
                if attempt:
                    raise
                continue
            break

        body = MESSAGE_TEMPLATE.format(code=code, minutes=int(self.ttl.total_seconds() // 60))
        try:
            self.sender.send(phone_number, body)
        except SmsDeliveryError as exc:
            self.db.rollback()
            logger.warning("Verification SMS to %s failed: %s", phone_number, exc)
            raise DeliveryFailed()
        except Exception:
            self.db.rollback()
            logger.exception("Unexpected error sending verification SMS to %s", phone_number)
            raise DeliveryFailed()

        self.db.commit()
        self.db.refresh(record)
        logger.info("Issued verification code for %s", phone_number)
        return record

    def confirm_code(self, phone_number: str, submitted: str, user_id: int | None = None) -> User | None:
        """Check ``submitted`` against the pending code for ``phone_number``.

        With ``user_id`` only a code that account requested is considered.
        On success the requesting user (or, for codes issued without one,
        the account already holding the number) gets the number marked
        verified and is returned; ``None`` when there is no such account.
        """
        record = self.db.get(VerificationCode, phone_number)
        if record is None or (user_id is not None and record.user_id != user_id):
            raise NotFound("No pending verification code for this number")

        if utcnow() >= record.expires_at:
            self._discard(record)
            raise Expired()

        if record.attempts_remaining <= 0:
            self._discard(record)
            logger.warning("Verification attempts exhausted for %s", phone_number)
            raise Exhausted()

        if not hmac.compare_digest(record.code_hash, self._digest(phone_number, submitted)):
            self._consume_attempt(record)

        owner_id = record.user_id
        if not self._live_code(record).delete(synchronize_session=False):
            # a concurrent confirmation or a newer code got there first
            self.db.rollback()
            raise NotFound("No pending verification code for this number")

        if owner_id is not None:
            user = self.db.get(User, owner_id)
        else:
            user = self.store.find_by_phone(phone_number)
        if user:
            try:
                self.store.claim_phone(user, phone_number)
            except Conflict:
                self.db.rollback()
                raise
        self.db.commit()
        if user:
            self.db.refresh(user)
        return user

    def _consume_attempt(self, record: VerificationCode) -> None:
        updated = (
            self._live_code(record)
            .filter(VerificationCode.attempts_remaining > 0)
            .update(
                {VerificationCode.attempts_remaining: VerificationCode.attempts_remaining - 1},
                synchronize_session=False,
            )
        )
        remaining = self._live_code(record).with_entities(VerificationCode.attempts_remaining).scalar()
        self.db.commit()
        if not updated:
            if remaining is None:
                raise NotFound("No pending verification code for this number")
            raise Exhausted()
        raise Mismatch(remaining)

    def pending_for(self, user_id: int) -> VerificationCode | None:
        return self.db.query(VerificationCode).filter(VerificationCode.user_id == user_id).first()

    def state_of(self, phone_number: str) -> VerificationState | None:
        """State of the stored code; ``None`` once it was used, discarded or never issued."""
        record = self.db.get(VerificationCode, phone_number)
        if record is None:
            return None
        if utcnow() >= record.expires_at:
            return VerificationState.expired
        if record.attempts_remaining <= 0:
            return VerificationState.exhausted
        return VerificationState.pending

    def _discard(self, record: VerificationCode) -> None:
        self._live_code(record).delete(synchronize_session=False)
        self.db.commit()
