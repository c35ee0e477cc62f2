from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from twilio.base.exceptions import TwilioRestException

from app.services.line_type_service import (
    LineType,
    NullLineTypeLookup,
    TwilioLineTypeLookup,
    build_line_type_lookup,
)
from app.services.sms_service import (
    ConsoleSmsSender,
    SmsDeliveryError,
    SmsSender,
    SnsSmsSender,
    TwilioSmsSender,
    build_sms_sender,
)


@pytest.fixture()
def vendor_config(config_factory):
    return config_factory(
        SMS_PROVIDER="console",
        LINE_TYPE_PROVIDER="none",
        TWILIO_ACCOUNT_SID="AC00000000000000000000000000000000",
        TWILIO_AUTH_TOKEN="token",
        TWILIO_FROM_NUMBER="+15550001111",
        AWS_REGION="us-east-1",
        AWS_ACCESS_KEY_ID="testing",
        AWS_SECRET_ACCESS_KEY="testing",
        SNS_SENDER_ID="Identity",
    )


def test_build_sms_sender_selects_vendor(vendor_config):
    assert isinstance(build_sms_sender(vendor_config), ConsoleSmsSender)

    vendor_config.SMS_PROVIDER = "twilio"
    assert isinstance(build_sms_sender(vendor_config), TwilioSmsSender)

    vendor_config.SMS_PROVIDER = "sns"
    sender = build_sms_sender(vendor_config)
    assert isinstance(sender, SnsSmsSender)
    assert isinstance(sender, SmsSender)

    vendor_config.SMS_PROVIDER = "carrier-pigeon"
    with pytest.raises(ValueError):
        build_sms_sender(vendor_config)


def test_twilio_sender_requires_credentials(vendor_config):
    vendor_config.TWILIO_FROM_NUMBER = None

    with pytest.raises(RuntimeError):
        TwilioSmsSender(vendor_config)


def test_twilio_sender_sends_and_wraps_errors(vendor_config):
    sender = TwilioSmsSender(vendor_config)
    sender.client = MagicMock()
    sender.client.messages.create.return_value = SimpleNamespace(sid="SM1", status="queued", error_message=None)

    sender.send("+15551234567", "hello")
    sender.client.messages.create.assert_called_once_with(to="+15551234567", from_="+15550001111", body="hello")

    sender.client.messages.create.side_effect = TwilioRestException(400, "/Messages", msg="Invalid 'To' number")
    with pytest.raises(SmsDeliveryError):
        sender.send("+15551234567", "hello")


def test_twilio_sender_treats_failed_status_as_error(vendor_config):
    sender = TwilioSmsSender(vendor_config)
    sender.client = MagicMock()
    sender.client.messages.create.return_value = SimpleNamespace(
        sid="SM2", status="failed", error_message="Unreachable destination"
    )

    with pytest.raises(SmsDeliveryError):
        sender.send("+15551234567", "hello")


def test_sns_sender_publishes_transactional_sms(vendor_config):
    sender = SnsSmsSender(vendor_config)
    sender.client = MagicMock()
    sender.client.publish.return_value = {"MessageId": "m-1"}

    sender.send("+15551234567", "hello")

    kwargs = sender.client.publish.call_args.kwargs
    assert kwargs["PhoneNumber"] == "+15551234567"
    assert kwargs["Message"] == "hello"
    attributes = kwargs["MessageAttributes"]
    assert attributes["AWS.SNS.SMS.SMSType"]["StringValue"] == "Transactional"
    assert attributes["AWS.SNS.SMS.SenderID"]["StringValue"] == "Identity"


def test_sns_sender_wraps_client_errors(vendor_config):
    sender = SnsSmsSender(vendor_config)
    sender.client = MagicMock()
    sender.client.publish.side_effect = ClientError(
        {"Error": {"Code": "InvalidParameter", "Message": "Invalid phone number"}}, "Publish"
    )

    with pytest.raises(SmsDeliveryError):
        sender.send("+15551234567", "hello")


def test_build_line_type_lookup(vendor_config):
    assert isinstance(build_line_type_lookup(vendor_config), NullLineTypeLookup)
    assert NullLineTypeLookup().classify("+15551234567") == LineType.unknown

    vendor_config.LINE_TYPE_PROVIDER = "twilio"
    assert isinstance(build_line_type_lookup(vendor_config), TwilioLineTypeLookup)

    vendor_config.LINE_TYPE_PROVIDER = "tea-leaves"
    with pytest.raises(ValueError):
        build_line_type_lookup(vendor_config)


@pytest.mark.parametrize(
    "twilio_type, expected",
    [
        ("mobile", LineType.mobile),
        ("landline", LineType.landline),
        ("nonFixedVoip", LineType.voip),
        ("fixedVoip", LineType.voip),
        ("tollFree", LineType.unknown),
        (None, LineType.unknown),
    ],
)
def test_twilio_line_type_mapping(vendor_config, twilio_type, expected):
    lookup = TwilioLineTypeLookup(vendor_config)
    lookup.client = MagicMock()
    lookup.client.lookups.v2.phone_numbers.return_value.fetch.return_value = SimpleNamespace(
        line_type_intelligence={"type": twilio_type}
    )

    assert lookup.classify("+15551234567") == expected


def test_twilio_lookup_failure_is_unknown(vendor_config):
    lookup = TwilioLineTypeLookup(vendor_config)
    lookup.client = MagicMock()
    lookup.client.lookups.v2.phone_numbers.return_value.fetch.side_effect = TwilioRestException(
        404, "/PhoneNumbers", msg="Not found"
    )

    assert lookup.classify("+15551234567") == LineType.unknown
