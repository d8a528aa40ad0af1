from __future__ import annotations


class AlertError(Exception):
    """Base class for failures that end an alert request."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(AlertError):
    """Missing credentials or sender identity. A deployment problem, not the caller's."""

    status_code = 500


class ValidationError(AlertError):
    """The caller left out something we had no fallback for."""

    status_code = 400


class ProviderError(AlertError):
    """
    Twilio rejected or failed a request.

    `sms_sid` is set when the SMS already went out and only the voice call
    failed, so the caller still learns about the delivered message.
    """

    status_code = 500

    def __init__(self, message: str, sms_sid: str | None = None) -> None:
        super().__init__(message)
        self.sms_sid = sms_sid
