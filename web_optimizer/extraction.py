"""Recover a JSON object from free-text model output.

Models wrap JSON in ```json fences or surround it with prose even when told
not to. The default extractor trims fence markers, then slices from the first
"{" to the last "}" and parses strictly. Nothing is coerced: text that does
not parse is reported with the raw text attached.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

from .errors import ExtractionError, MalformedReport, NoJsonFound
from .models import AdCampaign, AuditReport
from .validation import validate_ad_campaign, validate_report

logger = logging.getLogger(__name__)


class JsonExtractor:
    """Strategy interface: raw text -> parsed JSON object."""

    def extract(self, text: str) -> dict:
        raise NotImplementedError


class FenceSliceExtractor(JsonExtractor):
    def extract(self, text: str) -> dict:
        """
        Raises:
            NoJsonFound: no "{" ... "}" pair, before any parse is attempted.
            MalformedReport: the slice is not a JSON object.
        """
        raw = text or ""
        candidate = strip_code_fence(raw)

        start = candidate.find("{")
        end = candidate.rfind("}")
        if start == -1 or end < start:
            raise NoJsonFound("No JSON object found in model output.", raw_text=raw)

        try:
            parsed = json.loads(candidate[start:end + 1])
        except json.JSONDecodeError as e:
            raise MalformedReport(f"Model output is not valid JSON: {e}", raw_text=raw) from e

        if not isinstance(parsed, dict):
            raise MalformedReport("Model output is not a JSON object.", raw_text=raw)
        return parsed


def strip_code_fence(text: str) -> str:
    """Trim a leading ```json / ``` marker and a trailing ``` marker, if present."""
    s = text.strip()
    if s.startswith("```json"):
        s = s[len("```json"):]
    elif s.startswith("```"):
        s = s[len("```"):]
    if s.endswith("```"):
        s = s[:-len("```")]
    return s.strip()


@dataclass(frozen=True)
class Extraction:
    """Either `value` or `error` is set."""

    value: Any = None
    error: ExtractionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def extract_report(
    text: str,
    extractor: JsonExtractor | None = None,
    prepare: Callable[[dict], dict] | None = None,
) -> Extraction:
    """
    Raw model text -> Extraction holding an AuditReport or an ExtractionError.

    `prepare` may adjust the parsed payload before validation (the pipeline
    uses it to stamp the audited URL and scan date).
    """
    extractor = extractor or FenceSliceExtractor()
    try:
        payload = extractor.extract(text)
        if prepare is not None:
            payload = prepare(payload)
        report: AuditReport = validate_report(payload, raw_text=text)
    except ExtractionError as e:
        _log_failure(e)
        return Extraction(error=e)
    return Extraction(value=report)


def extract_ad_campaign(text: str, extractor: JsonExtractor | None = None) -> Extraction:
    extractor = extractor or FenceSliceExtractor()
    try:
        campaign: AdCampaign = validate_ad_campaign(extractor.extract(text), raw_text=text)
    except ExtractionError as e:
        _log_failure(e)
        return Extraction(error=e)
    return Extraction(value=campaign)


def _log_failure(error: ExtractionError) -> None:
    logger.warning("Extraction failed (%s): %s", error.kind, error)
    logger.debug("Raw model output:\n%s", error.raw_text)
