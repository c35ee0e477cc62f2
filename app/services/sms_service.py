"""
SMS delivery collaborators.

Each vendor implements the ``SmsSender`` protocol: ``send(to_number, body)``
returns on success and raises ``SmsDeliveryError`` on any failure. The
phone verification flow only ever sees this contract.

Vendor selection:
    SMS_PROVIDER=console  -> ConsoleSmsSender (logs the message, local dev)
    SMS_PROVIDER=twilio   -> TwilioSmsSender
    SMS_PROVIDER=sns      -> SnsSmsSender
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

logger = logging.getLogger(__name__)


class SmsDeliveryError(Exception):
    """The vendor did not accept the message."""


@runtime_checkable
class SmsSender(Protocol):
    def send(self, to_number: str, body: str) -> None:
        ...


class ConsoleSmsSender:
    """Writes messages to the log instead of sending them."""

    def send(self, to_number: str, body: str) -> None:
        logger.info("SMS to %s: %s", to_number, body)


class TwilioSmsSender:
    def __init__(self, config):
        if not (config.TWILIO_ACCOUNT_SID and config.TWILIO_AUTH_TOKEN and config.TWILIO_FROM_NUMBER):
            raise RuntimeError("Twilio SMS requires TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER")
        self.client = TwilioClient(config.TWILIO_ACCOUNT_SID, config.TWILIO_AUTH_TOKEN)
        self.from_number = config.TWILIO_FROM_NUMBER

    def send(self, to_number: str, body: str) -> None:
        try:
            message = self.client.messages.create(to=to_number, from_=self.from_number, body=body)
        except TwilioException as exc:
            logger.warning("Twilio rejected SMS to %s: %s", to_number, exc)
            raise SmsDeliveryError(str(exc)) from exc
        if message.status == "failed":
            raise SmsDeliveryError(message.error_message or "Twilio reported a failed message")
        logger.info("Twilio accepted SMS sid=%s", message.sid)


class SnsSmsSender:
    def __init__(self, config):
        session = boto3.session.Session()
        self.client = session.client(
            "sns",
            region_name=config.AWS_REGION,
            aws_access_key_id=config.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=config.AWS_SECRET_ACCESS_KEY,
        )
        self.sender_id = config.SNS_SENDER_ID

    def _attributes(self) -> dict:
        attributes = {
            "AWS.SNS.SMS.SMSType": {"DataType": "String", "StringValue": "Transactional"},
        }
        if self.sender_id:
            attributes["AWS.SNS.SMS.SenderID"] = {"DataType": "String", "StringValue": self.sender_id}
        return attributes

    def send(self, to_number: str, body: str) -> None:
        try:
            response = self.client.publish(
                PhoneNumber=to_number,
                Message=body,
                MessageAttributes=self._attributes(),
            )
        except (BotoCoreError, ClientError) as exc:
            logger.warning("SNS rejected SMS to %s: %s", to_number, exc)
            raise SmsDeliveryError(str(exc)) from exc
        logger.info("SNS accepted SMS message_id=%s", response.get("MessageId"))


SENDERS: dict[str, type] = {
    "console": ConsoleSmsSender,
    "twilio": TwilioSmsSender,
    "sns": SnsSmsSender,
}


def build_sms_sender(config) -> SmsSender:
    sender_cls = SENDERS.get(config.SMS_PROVIDER)
    if sender_cls is None:
        raise ValueError(f"Unknown SMS_PROVIDER: {config.SMS_PROVIDER}")
    if sender_cls is ConsoleSmsSender:
        return sender_cls()
    return sender_cls(config)
