from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError as PydanticValidationError

from .alerts import AlertRequest, dispatch_alert
from .config import Settings, get_settings
from .errors import AlertError, ProviderError
from .logging_config import mask, setup_logging

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def log_startup_config(settings: Settings) -> None:
    """Log which settings are present, never the full credentials."""
    if not settings.has_credentials:
        logger.warning("Twilio credentials not found. Set ACCOUNT_ID and AUTH_SECRET in the environment.")

    logger.info("ACCOUNT_ID: %s", mask(settings.account_id))
    logger.info("SENDER_NUMBER: %s", mask(settings.sender_number))
    logger.info("MESSAGING_SERVICE_ID: %s", mask(settings.messaging_service_id))
    logger.info("DEFAULT_DESTINATION: %s", mask(settings.default_destination))


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: runs once before the app starts serving requests
    setup_logging(app.state.settings.log_level)
    log_startup_config(app.state.settings)
    yield


async def parse_alert_request(request: Request) -> AlertRequest:
    """
    Read `to`/`body` from a JSON or form-encoded body.

    An empty body or JSON null counts as `{}`. Anything that fails to parse
    or validate is raised as RequestValidationError so it gets the same 400
    shape as FastAPI's own validation errors.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        data: Any = dict(form)
    else:
        raw = await request.body()
        try:
            data = await request.json() if raw.strip() else None
        except ValueError as exc:
            raise RequestValidationError(
                [{"type": "json_invalid", "loc": ("body",), "msg": "JSON decode error", "input": {}}]
            ) from exc

    try:
        return AlertRequest.model_validate({} if data is None else data)
    except PydanticValidationError as exc:
        raise RequestValidationError(
            [{**err, "loc": ("body", *err["loc"])} for err in exc.errors()]
        ) from exc


def error_response(exc: AlertError) -> JSONResponse:
    content: dict[str, object] = {"success": False, "error": exc.message}
    if isinstance(exc, ProviderError) and exc.sms_sid:
        content["smsSid"] = exc.sms_sid
    return JSONResponse(content, status_code=exc.status_code)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="fan-alert", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Same shape as every other failure, instead of FastAPI's 422 detail list
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return JSONResponse(
            {"success": False, "error": f"Invalid request body: {details}"},
            status_code=400,
        )

    @app.get("/", response_class=PlainTextResponse)
    def health() -> str:
        return "Fan Alert System is running."

    @app.post("/send-failure-alert")
    def send_failure_alert(
        payload: AlertRequest = Depends(parse_alert_request),
    ) -> JSONResponse:
        """
        Send the failure SMS and follow-up call.

        Accepts JSON or form fields (both optional):

          { "to": "+91XXXXXXXXXX", "body": "Custom message" }

        `to` falls back to DEFAULT_DESTINATION; `body` falls back to the
        standard fan-failure text.
        """
        try:
            result = dispatch_alert(payload, settings)
        except AlertError as exc:
            return error_response(exc)
        return JSONResponse(result.to_payload())

    if settings.static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")

    return app


app = create_app()


def main() -> None:
    """Run the alert service with Uvicorn."""
    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run(
        "fan_alert.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
        # keep the handler from setup_logging instead of uvicorn's own dictConfig
        log_config=None,
    )


if __name__ == "__main__":
    main()
