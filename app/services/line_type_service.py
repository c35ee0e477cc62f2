"""Phone line-type classification used to keep VoIP numbers out of verification."""

from __future__ import annotations

import enum
import logging
from typing import Protocol, runtime_checkable

from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

logger = logging.getLogger(__name__)


class LineType(str, enum.Enum):
    mobile = "mobile"
    landline = "landline"
    voip = "voip"
    unknown = "unknown"


# Twilio Lookup v2 line_type_intelligence.type values
_TWILIO_LINE_TYPES = {
    "mobile": LineType.mobile,
    "landline": LineType.landline,
    "fixedVoip": LineType.voip,
    "nonFixedVoip": LineType.voip,
}


@runtime_checkable
class LineTypeLookup(Protocol):
    def classify(self, number: str) -> LineType:
        ...


class NullLineTypeLookup:
    def classify(self, number: str) -> LineType:
        return LineType.unknown


class TwilioLineTypeLookup:
    def __init__(self, config):
        if not (config.TWILIO_ACCOUNT_SID and config.TWILIO_AUTH_TOKEN):
            raise RuntimeError("Twilio lookup requires TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN")
        self.client = TwilioClient(config.TWILIO_ACCOUNT_SID, config.TWILIO_AUTH_TOKEN)

    def classify(self, number: str) -> LineType:
        try:
            result = self.client.lookups.v2.phone_numbers(number).fetch(fields="line_type_intelligence")
        except TwilioException as exc:
            logger.warning("Line type lookup failed for %s: %s", number, exc)
            return LineType.unknown
        intelligence = result.line_type_intelligence or {}
        return _TWILIO_LINE_TYPES.get(intelligence.get("type"), LineType.unknown)


LOOKUPS: dict[str, type] = {
    "none": NullLineTypeLookup,
    "twilio": TwilioLineTypeLookup,
}


def build_line_type_lookup(config) -> LineTypeLookup:
    lookup_cls = LOOKUPS.get(config.LINE_TYPE_PROVIDER)
    if lookup_cls is None:
        raise ValueError(f"Unknown LINE_TYPE_PROVIDER: {config.LINE_TYPE_PROVIDER}")
    if lookup_cls is NullLineTypeLookup:
        return lookup_cls()
    return lookup_cls(config)
