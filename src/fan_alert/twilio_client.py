from __future__ import annotations

from typing import Any

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from .config import Settings
from .errors import ConfigurationError, ProviderError

MISSING_CREDENTIALS = "Twilio client not configured. Set ACCOUNT_ID and AUTH_SECRET in the environment."


def get_twilio_client(settings: Settings) -> Client:
    if not settings.has_credentials:
        raise ConfigurationError(MISSING_CREDENTIALS)

    return Client(settings.account_id, settings.auth_secret)


def _provider_message(exc: Exception) -> str:
    # TwilioRestException keeps the API's own message in .msg
    if isinstance(exc, TwilioRestException) and exc.msg:
        return str(exc.msg)
    return str(exc) or exc.__class__.__name__


def _sid_of(resource: Any) -> str:
    sid = getattr(resource, "sid", None)
    if not sid:
        raise ProviderError(f"Twilio response has no sid: {resource!r}")
    return str(sid)


def send_sms(
    client: Client,
    to: str,
    body: str,
    from_number: str | None = None,
    messaging_service_sid: str | None = None,
) -> str:
    """
    Send an SMS and return the message SID.

    Exactly one sender identity is put in the payload; the Messaging Service
    wins when both are given.
    """
    kwargs: dict[str, Any] = {"to": to, "body": body}
    if messaging_service_sid:
        kwargs["messaging_service_sid"] = messaging_service_sid
    elif from_number:
        kwargs["from_"] = from_number
    else:
        raise ConfigurationError("send_sms needs a from number or a messaging service SID")

    try:
        message = client.messages.create(**kwargs)
    except Exception as exc:  # TwilioException, transport errors, bad responses
        raise ProviderError(_provider_message(exc)) from exc

    return _sid_of(message)


def place_call(client: Client, to: str, from_number: str, url: str) -> str:
    """Start a voice call that plays the TwiML at `url`; returns the call SID."""
    try:
        call = client.calls.create(url=url, from_=from_number, to=to)
    except Exception as exc:
        raise ProviderError(_provider_message(exc)) from exc

    return _sid_of(call)
