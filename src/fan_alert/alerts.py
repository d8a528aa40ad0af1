from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, StrictStr
from twilio.rest import Client

from .config import Settings, first_non_empty
from .errors import ConfigurationError, ProviderError, ValidationError
from .logging_config import mask
from .twilio_client import MISSING_CREDENTIALS, get_twilio_client, place_call, send_sms

logger = logging.getLogger(__name__)

DEFAULT_ALERT_BODY: Final[str] = "Fan 1 in Pond A has stopped working!"

MISSING_DESTINATION: Final[str] = (
    "Missing 'to' number. Provide it in the JSON body { \"to\": \"+91...\" } "
    "or set DEFAULT_DESTINATION in the environment."
)
MISSING_SENDER: Final[str] = (
    "Missing 'from' configuration. Set SENDER_NUMBER or MESSAGING_SERVICE_ID in the environment."
)


class AlertRequest(BaseModel):
    """
    JSON body of POST /send-failure-alert.

    Both fields are optional; unknown fields and non-string values are
    rejected instead of being coerced.
    """

    model_config = ConfigDict(extra="forbid")

    to: StrictStr | None = None
    body: StrictStr | None = None


@dataclass
class AlertResult:
    success: bool
    message: str
    sms_sid: str
    call_sid: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            "smsSid": self.sms_sid,
        }
        if self.call_sid is not None:
            payload["callSid"] = self.call_sid
        return payload


def resolve_destination(request: AlertRequest, settings: Settings) -> str:
    """Request's `to` first, then DEFAULT_DESTINATION."""
    destination = first_non_empty(request.to, settings.default_destination)
    if destination is None:
        raise ValidationError(MISSING_DESTINATION)
    return destination


def resolve_body(request: AlertRequest) -> str:
    # DEFAULT_ALERT_BODY is never blank, so this always resolves
    return first_non_empty(request.body, DEFAULT_ALERT_BODY) or DEFAULT_ALERT_BODY


def dispatch_alert(
    request: AlertRequest,
    settings: Settings,
    client: Client | None = None,
) -> AlertResult:
    """
    Send the failure SMS, then place the follow-up voice call.

    - credentials are checked before anything else
    - the SMS goes out through the Messaging Service when one is configured,
      otherwise from SENDER_NUMBER
    - the call needs SENDER_NUMBER; without it the call is skipped and the
      result is a partial success
    - nothing is retried, and the call is never attempted after a failed SMS

    `client` is only for injecting a fake; normally it is built from settings.
    """
    if not settings.has_credentials:
        raise ConfigurationError(MISSING_CREDENTIALS)

    destination = resolve_destination(request, settings)
    body = resolve_body(request)

    if not (settings.messaging_service_id or settings.sender_number):
        raise ConfigurationError(MISSING_SENDER)

    if client is None:
        client = get_twilio_client(settings)

    try:
        sms_sid = send_sms(
            client,
            to=destination,
            body=body,
            from_number=settings.sender_number,
            messaging_service_sid=settings.messaging_service_id,
        )
    except ProviderError as exc:
        logger.error("SMS to %s failed: %s", mask(destination), exc.message)
        raise
    logger.info("SMS sent to %s (sid=%s)", mask(destination), sms_sid)

    if not settings.sender_number:
        logger.warning("Skipping call: SENDER_NUMBER not set (required for call 'from').")
        return AlertResult(
            success=True,
            message="SMS sent (call skipped - no SENDER_NUMBER configured).",
            sms_sid=sms_sid,
        )

    try:
        call_sid = place_call(
            client,
            to=destination,
            from_number=settings.sender_number,
            url=settings.call_flow_url,
        )
    except ProviderError as exc:
        logger.error("Call to %s failed after SMS %s: %s", mask(destination), sms_sid, exc.message)
        raise ProviderError(exc.message, sms_sid=sms_sid) from exc
    logger.info("Call placed to %s (sid=%s)", mask(destination), call_sid)

    return AlertResult(
        success=True,
        message="SMS and Call sent successfully.",
        sms_sid=sms_sid,
        call_sid=call_sid,
    )
