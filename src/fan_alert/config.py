from __future__ import annotations

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Final

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

DEFAULT_PORT: Final[int] = 3000
DEFAULT_CALL_FLOW_URL: Final[str] = "http://demo.twilio.com/docs/voice.xml"

# Repo root in local dev; override with PROJECT_ROOT when installed elsewhere
PROJECT_ROOT: Final[Path] = Path(os.getenv("PROJECT_ROOT", Path(__file__).resolve().parents[2]))


def first_non_empty(*candidates: str | None) -> str | None:
    """
    Return the first candidate that is not None and not blank.

    Candidates are checked in the order given, so precedence is explicit at
    the call site. Only None and whitespace-only strings are skipped; a value
    like "0" counts as present.
    """
    for candidate in candidates:
        if candidate is not None and candidate.strip():
            return candidate
    return None


def _env(environ: Mapping[str, str], *keys: str) -> str | None:
    """Read the first non-blank env var among `keys`, stripped."""
    value = first_non_empty(*(environ.get(key) for key in keys))
    return value.strip() if value is not None else None


def _parse_port(raw: str | None) -> int:
    # Absent, garbage or non-positive -> fallback port
    try:
        port = int(raw) if raw is not None else DEFAULT_PORT
    except ValueError:
        return DEFAULT_PORT
    return port if 0 < port < 65536 else DEFAULT_PORT


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    # --- Twilio credentials ---
    account_id: str | None = None
    auth_secret: str | None = None

    # --- Sender identity ---
    # Messaging Service SID is preferred for SMS; voice calls always need the number.
    sender_number: str | None = None
    messaging_service_id: str | None = None

    # Used when the request does not name a destination
    default_destination: str | None = None

    # TwiML the callee hears when the voice call connects
    call_flow_url: str = DEFAULT_CALL_FLOW_URL

    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    # Pre-built front-end assets, mounted at /static when the directory exists
    static_dir: Path = PROJECT_ROOT / "public"

    @property
    def has_credentials(self) -> bool:
        return bool(self.account_id and self.auth_secret)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Build settings from environment variables.

        The short names (ACCOUNT_ID, AUTH_SECRET, ...) win; the canonical
        Twilio names are accepted as fallbacks so older deployments keep
        working.
        """
        env = os.environ if environ is None else environ
        static_dir = _env(env, "STATIC_DIR")
        return cls(
            account_id=_env(env, "ACCOUNT_ID", "TWILIO_ACCOUNT_SID"),
            auth_secret=_env(env, "AUTH_SECRET", "TWILIO_AUTH_TOKEN"),
            sender_number=_env(env, "SENDER_NUMBER", "TWILIO_PHONE_NUMBER"),
            messaging_service_id=_env(env, "MESSAGING_SERVICE_ID", "TWILIO_MESSAGING_SERVICE_SID"),
            default_destination=_env(env, "DEFAULT_DESTINATION", "TO_NUMBER"),
            call_flow_url=_env(env, "CALL_FLOW_URL") or DEFAULT_CALL_FLOW_URL,
            port=_parse_port(_env(env, "PORT")),
            log_level=(_env(env, "LOG_LEVEL") or "INFO").upper(),
            static_dir=Path(static_dir) if static_dir else PROJECT_ROOT / "public",
        )


def load_env_files() -> None:
    """
    Load .env from the working directory, then from the project root.

    Variables already set in the process environment are never overridden,
    and the working directory's file wins over the project root's.
    """
    for path in (Path.cwd() / ".env", PROJECT_ROOT / ".env"):
        if path.is_file():
            load_dotenv(path)


@lru_cache
def get_settings() -> Settings:
    load_env_files()
    return Settings.from_env()
