"""Orchestration: URL -> model (search, then no search) -> extraction -> AuditReport."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable

from .config import Settings
from .errors import (
    AuditError,
    ConfigurationError,
    ServiceUnavailable,
)
from .extraction import JsonExtractor, FenceSliceExtractor, extract_ad_campaign, extract_report
from .gateway import Gateway
from .models import AdCampaign, AuditReport
from .prompts import (
    AD_PROMPT,
    AD_SYSTEM_INSTRUCTION,
    AUDIT_SYSTEM_INSTRUCTION,
    OFFLINE_AUDIT_PROMPT,
    SEARCH_AUDIT_PROMPT,
)
from .urls import hostname_of

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2

CREDENTIAL_STATUS_CODES = (401, 403, 429)
CREDENTIAL_MARKERS = (
    "401", "403", "429",
    "api key", "api_key", "authentication", "unauthorized", "permission",
    "quota", "credit balance", "resource_exhausted",
)


@dataclass(frozen=True)
class Attempt:
    name: str
    use_search: bool
    prompt_template: str  # formatted with url= and host=
    progress_message: str

    def prompt_for(self, url: str) -> str:
        return self.prompt_template.format(url=url, host=hostname_of(url))


DEFAULT_ATTEMPTS = (
    Attempt(
        name="live-search",
        use_search=True,
        prompt_template=SEARCH_AUDIT_PROMPT,
        progress_message="Investigating site with live search...",
    ),
    Attempt(
        name="offline",
        use_search=False,
        prompt_template=OFFLINE_AUDIT_PROMPT,
        progress_message="Live search unavailable, running best-effort analysis...",
    ),
)


def is_credential_error(error: BaseException) -> bool:
    """True when an error points at bad credentials or exhausted quota."""
    if isinstance(error, ConfigurationError):
        return True
    status_code = getattr(error, "status_code", None)
    if status_code is not None:
        return status_code in CREDENTIAL_STATUS_CODES
    message = str(error).lower()
    return any(marker in message for marker in CREDENTIAL_MARKERS)


class AcquisitionPipeline:
    """
    Produce a validated AuditReport for one URL.

    Attempts run strictly in order; the next one starts only after the
    previous one has failed to return text. At most MAX_ATTEMPTS upstream
    calls are made per audit. Once any attempt returns text, extraction
    decides the outcome: a parse or validation failure is terminal.
    """

    def __init__(
        self,
        gateway: Gateway,
        settings: Settings,
        extractor: JsonExtractor | None = None,
        attempts: tuple[Attempt, ...] = DEFAULT_ATTEMPTS,
    ):
        if not 1 <= len(attempts) <= MAX_ATTEMPTS:
            raise ValueError(f"Between 1 and {MAX_ATTEMPTS} attempts are allowed, got {len(attempts)}.")
        self.gateway = gateway
        self.settings = settings
        self.extractor = extractor or FenceSliceExtractor()
        self.attempts = attempts

    def acquire(self, url: str, on_progress: Callable[[str], None] | None = None) -> AuditReport:
        """
        Run the attempts for an already-normalized URL.

        Raises:
            ConfigurationError: last attempt failed on credentials/quota.
            ServiceUnavailable: last attempt failed for any other reason.
            NoJsonFound / MalformedReport: returned text was not a usable report.
        """
        def _progress(msg: str):
            if on_progress:
                on_progress(msg)

        raw_text = None
        last_error: Exception | None = None

        for attempt in self.attempts:
            _progress(attempt.progress_message)
            try:
                raw_text = self.gateway.generate(
                    AUDIT_SYSTEM_INSTRUCTION,
                    attempt.prompt_for(url),
                    use_search=attempt.use_search,
                    temperature=self.settings.audit_temperature,
                )
            except Exception as e:
                last_error = e
                logger.warning("Audit attempt %r for %s failed: %s", attempt.name, url, e)
                continue

            if raw_text and raw_text.strip():
                logger.info("Audit attempt %r for %s returned %d chars", attempt.name, url, len(raw_text))
                break
            last_error = None
            logger.warning("Audit attempt %r for %s returned no text", attempt.name, url)
            raw_text = None

        if raw_text is None:
            raise self._classify(url, last_error) from last_error

        _progress("Parsing audit report...")

        def _stamp(payload: dict) -> dict:
            payload = dict(payload)
            payload["targetUrl"] = url
            if not str(payload.get("scanDate") or "").strip():
                payload["scanDate"] = date.today().isoformat()
            return payload

        result = extract_report(raw_text, self.extractor, prepare=_stamp)
        if not result.ok:
            logger.error("Audit for %s failed: %s", url, result.error.kind)
        return result.unwrap()

    def _classify(self, url: str, error: Exception | None) -> AuditError:
        if error is not None and is_credential_error(error):
            classified = ConfigurationError(str(error))
            if isinstance(error, ConfigurationError):
                classified.user_message = error.user_message
        else:
            classified = ServiceUnavailable(str(error) if error else "No text returned by any attempt.")
        logger.error("Audit for %s failed after %d attempts: %s", url, len(self.attempts), classified.kind)
        return classified

    def create_ad_campaign(self, url: str, keywords: list[str] | tuple[str, ...]) -> AdCampaign:
        """Single no-search call; errors propagate unchanged."""
        raw_text = self.gateway.generate(
            AD_SYSTEM_INSTRUCTION,
            AD_PROMPT.format(url=url, keywords=", ".join(keywords) or "(none)"),
            use_search=False,
            temperature=self.settings.chat_temperature,
        )
        return extract_ad_campaign(raw_text, self.extractor).unwrap()
