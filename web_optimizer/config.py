"""Settings from the environment (and an optional .env file)."""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv
from rich.logging import RichHandler

from .errors import ConfigurationError

DEFAULT_MODEL = "claude-sonnet-4-5"


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    model: str = DEFAULT_MODEL
    timeout_seconds: float = 120.0
    max_tokens: int = 8192
    audit_temperature: float = 0.3
    chat_temperature: float = 0.7
    search_max_uses: int = 5
    chat_findings: int = 5  # findings embedded in the chat system prompt
    session_ttl_seconds: float = 3600.0  # idle sessions older than this are evicted
    max_sessions: int = 1000
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    def require_api_key(self) -> str:
        if not self.api_key.strip():
            raise ConfigurationError(
                "ANTHROPIC_API_KEY not set.",
                user_message="The analysis service is not configured: ANTHROPIC_API_KEY is not set.",
            )
        return self.api_key.strip()


def load_settings(environ: dict | None = None) -> Settings:
    """
    Read Settings from `environ` (default: os.environ after loading .env).

    Raises:
        ConfigurationError: a numeric variable does not parse.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    def _get(name: str, default: str) -> str:
        return (environ.get(name) or "").strip() or default

    def _number(name: str, default, cast):
        raw = (environ.get(name) or "").strip()
        if not raw:
            return default
        try:
            return cast(raw)
        except ValueError:
            raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None

    return Settings(
        api_key=(environ.get("ANTHROPIC_API_KEY") or "").strip(),
        model=_get("WEB_OPTIMIZER_MODEL", DEFAULT_MODEL),
        timeout_seconds=_number("WEB_OPTIMIZER_TIMEOUT_SECONDS", 120.0, float),
        max_tokens=_number("WEB_OPTIMIZER_MAX_TOKENS", 8192, int),
        audit_temperature=_number("WEB_OPTIMIZER_AUDIT_TEMPERATURE", 0.3, float),
        chat_temperature=_number("WEB_OPTIMIZER_CHAT_TEMPERATURE", 0.7, float),
        search_max_uses=_number("WEB_OPTIMIZER_SEARCH_MAX_USES", 5, int),
        chat_findings=_number("WEB_OPTIMIZER_CHAT_FINDINGS", 5, int),
        session_ttl_seconds=_number("WEB_OPTIMIZER_SESSION_TTL_SECONDS", 3600.0, float),
        max_sessions=_number("WEB_OPTIMIZER_MAX_SESSIONS", 1000, int),
        host=_get("HOST", "0.0.0.0"),
        port=_number("PORT", 8080, int),
        log_level=_get("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
