from __future__ import annotations

import pytest
from twilio.base.exceptions import TwilioRestException

from fan_alert.alerts import (
    DEFAULT_ALERT_BODY,
    AlertRequest,
    dispatch_alert,
)
from fan_alert.config import Settings
from fan_alert.errors import ConfigurationError, ProviderError, ValidationError

from fakes import FakeClient


def test_full_success_sends_sms_then_call(settings: Settings, fake_client: FakeClient) -> None:
    request = AlertRequest(to="+911234567890", body="Test alert")

    result = dispatch_alert(request, settings, client=fake_client)

    assert result.success is True
    assert result.sms_sid == "SMxxxx"
    assert result.call_sid == "CAxxxx"
    assert result.to_payload() == {
        "success": True,
        "message": "SMS and Call sent successfully.",
        "smsSid": "SMxxxx",
        "callSid": "CAxxxx",
    }

    assert fake_client.messages.calls == [
        {"to": "+911234567890", "body": "Test alert", "from_": "+15550001111"}
    ]
    assert fake_client.calls.calls == [
        {
            "url": "http://demo.twilio.com/docs/voice.xml",
            "from_": "+15550001111",
            "to": "+911234567890",
        }
    ]


def test_missing_credentials_fails_before_anything_else(fake_client: FakeClient) -> None:
    """No credentials and no destination: still a ConfigurationError, not a ValidationError."""
    settings = Settings(sender_number="+15550001111")

    with pytest.raises(ConfigurationError) as excinfo:
        dispatch_alert(AlertRequest(), settings, client=fake_client)

    assert "ACCOUNT_ID" in excinfo.value.message
    assert "AUTH_SECRET" in excinfo.value.message
    assert excinfo.value.status_code == 500
    assert fake_client.messages.calls == []


def test_missing_destination_is_validation_error(fake_client: FakeClient) -> None:
    settings = Settings(account_id="AC123456789", auth_secret="tok123456789", sender_number="+15550001111")

    with pytest.raises(ValidationError) as excinfo:
        dispatch_alert(AlertRequest(), settings, client=fake_client)

    assert "Missing 'to' number" in excinfo.value.message
    assert excinfo.value.status_code == 400
    assert fake_client.messages.calls == []
    assert fake_client.calls.calls == []


def test_blank_to_falls_back_to_default_destination(settings: Settings, fake_client: FakeClient) -> None:
    dispatch_alert(AlertRequest(to="   "), settings, client=fake_client)

    assert fake_client.messages.calls[0]["to"] == "+15557778888"


def test_request_to_wins_over_default_destination(settings: Settings, fake_client: FakeClient) -> None:
    dispatch_alert(AlertRequest(to="0"), settings, client=fake_client)

    # "0" is falsy-looking but still a real value
    assert fake_client.messages.calls[0]["to"] == "0"
    assert fake_client.calls.calls[0]["to"] == "0"


def test_default_body_used_verbatim(settings: Settings, fake_client: FakeClient) -> None:
    dispatch_alert(AlertRequest(to="+15551234567"), settings, client=fake_client)

    assert DEFAULT_ALERT_BODY == "Fan 1 in Pond A has stopped working!"
    assert fake_client.messages.calls[0]["body"] == "Fan 1 in Pond A has stopped working!"


def test_empty_body_uses_default(settings: Settings, fake_client: FakeClient) -> None:
    dispatch_alert(AlertRequest(body=""), settings, client=fake_client)

    assert fake_client.messages.calls[0]["body"] == DEFAULT_ALERT_BODY


def test_messaging_service_only_skips_call(fake_client: FakeClient) -> None:
    settings = Settings(
        account_id="AC0123456789abcdef",
        auth_secret="secret-token-value",
        messaging_service_id="MG0123456789abcdef",
    )

    result = dispatch_alert(AlertRequest(to="+15551234567"), settings, client=fake_client)

    assert result.success is True
    assert result.call_sid is None
    assert "call skipped" in result.message
    payload = result.to_payload()
    assert payload["smsSid"] == "SMxxxx"
    assert "callSid" not in payload

    sent = fake_client.messages.calls[0]
    assert sent["messaging_service_sid"] == "MG0123456789abcdef"
    assert "from_" not in sent
    assert fake_client.calls.calls == []


def test_messaging_service_preferred_but_call_still_placed(
    settings: Settings, fake_client: FakeClient
) -> None:
    settings = settings.model_copy(update={"messaging_service_id": "MG0123456789abcdef"})

    result = dispatch_alert(AlertRequest(), settings, client=fake_client)

    sent = fake_client.messages.calls[0]
    assert sent["messaging_service_sid"] == "MG0123456789abcdef"
    assert "from_" not in sent
    assert fake_client.calls.calls[0]["from_"] == "+15550001111"
    assert result.call_sid == "CAxxxx"


def test_missing_sender_is_configuration_error(fake_client: FakeClient) -> None:
    settings = Settings(account_id="AC0123456789abcdef", auth_secret="secret-token-value")

    with pytest.raises(ConfigurationError) as excinfo:
        dispatch_alert(AlertRequest(to="+15551234567"), settings, client=fake_client)

    assert "SENDER_NUMBER" in excinfo.value.message
    assert fake_client.messages.calls == []


def test_sms_failure_never_places_call(settings: Settings) -> None:
    error = TwilioRestException(400, "https://api.twilio.com/Messages", msg="The 'To' number is not valid.")
    client = FakeClient(sms_error=error)

    with pytest.raises(ProviderError) as excinfo:
        dispatch_alert(AlertRequest(), settings, client=client)

    assert excinfo.value.message == "The 'To' number is not valid."
    assert excinfo.value.sms_sid is None
    assert client.calls.calls == []


def test_call_failure_keeps_sms_sid(settings: Settings) -> None:
    client = FakeClient(call_error=RuntimeError("connection reset"))

    with pytest.raises(ProviderError) as excinfo:
        dispatch_alert(AlertRequest(), settings, client=client)

    assert excinfo.value.message == "connection reset"
    assert excinfo.value.sms_sid == "SMxxxx"
    assert len(client.calls.calls) == 1


def test_response_without_sid_is_provider_error(settings: Settings) -> None:
    client = FakeClient(sms_sid=None)

    with pytest.raises(ProviderError) as excinfo:
        dispatch_alert(AlertRequest(), settings, client=client)

    assert "no sid" in excinfo.value.message
    assert client.calls.calls == []


def test_client_built_from_settings_when_not_given(
    settings: Settings, fake_client: FakeClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    seen: list[Settings] = []

    def get_fake_client(s: Settings) -> FakeClient:
        seen.append(s)
        return fake_client

    monkeypatch.setattr("fan_alert.alerts.get_twilio_client", get_fake_client)

    dispatch_alert(AlertRequest(), settings)

    assert seen == [settings]
    assert len(fake_client.messages.calls) == 1


def test_request_rejects_unknown_fields_and_non_strings() -> None:
    import pydantic

    with pytest.raises(pydantic.ValidationError):
        AlertRequest.model_validate({"to": "+15551234567", "extra": 1})
    with pytest.raises(pydantic.ValidationError):
        AlertRequest.model_validate({"to": 15551234567})


def test_precedence_independent_of_field_order(settings: Settings) -> None:
    first = FakeClient()
    second = FakeClient()

    dispatch_alert(AlertRequest.model_validate({"to": "+1555", "body": "x"}), settings, client=first)
    dispatch_alert(AlertRequest.model_validate({"body": "x", "to": "+1555"}), settings, client=second)

    assert first.messages.calls == second.messages.calls
    assert first.calls.calls == second.calls.calls
