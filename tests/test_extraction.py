import json

import pytest

from web_optimizer import extraction
from web_optimizer.errors import MalformedReport, NoJsonFound
from web_optimizer.extraction import (
    Extraction,
    FenceSliceExtractor,
    extract_ad_campaign,
    extract_report,
    strip_code_fence,
)
from web_optimizer.models import AuditReport

from conftest import AD_TEXT, make_report_payload, make_report_text


@pytest.mark.parametrize(
    "raw, expected",
    [
        ('```json\n{"a": 1}\n```', '{"a": 1}'),
        ('```\n{"a": 1}\n```', '{"a": 1}'),
        ('  {"a": 1}  ', '{"a": 1}'),
        ('{"a": 1}\n```', '{"a": 1}'),
    ],
)
def test_strip_code_fence(raw, expected):
    assert strip_code_fence(raw) == expected


def test_fenced_json_is_extracted():
    assert FenceSliceExtractor().extract('```json\n{"a": 1}\n```') == {"a": 1}


def test_json_surrounded_by_prose_is_extracted():
    text = 'Here is your report:\n{"a": {"b": 2}}\nLet me know if you need more.'
    assert FenceSliceExtractor().extract(text) == {"a": {"b": 2}}


def test_no_brace_never_attempts_parse(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("json.loads must not be called")

    monkeypatch.setattr(extraction.json, "loads", fail)
    with pytest.raises(NoJsonFound) as exc_info:
        FenceSliceExtractor().extract("Sorry, I could not analyze that site.")
    assert exc_info.value.raw_text == "Sorry, I could not analyze that site."


def test_closing_brace_before_opening_is_no_json():
    with pytest.raises(NoJsonFound):
        FenceSliceExtractor().extract("} nothing here {")


def test_malformed_json_keeps_raw_text():
    raw = '```json\n{"overallScore": 72,}\n```'
    with pytest.raises(MalformedReport) as exc_info:
        FenceSliceExtractor().extract(raw)
    assert exc_info.value.raw_text == raw
    assert exc_info.value.kind == "malformed_report"


def test_extract_report_success():
    result = extract_report(make_report_text())
    assert result.ok
    assert isinstance(result.value, AuditReport)
    assert result.value.overall_score == 72
    assert len(result.value.sections) == 10


def test_extract_report_failure_is_returned_not_raised():
    result = extract_report("no json here")
    assert not result.ok
    assert isinstance(result.error, NoJsonFound)
    with pytest.raises(NoJsonFound):
        result.unwrap()


def test_extract_report_validation_failure_is_malformed():
    text = json.dumps(make_report_payload(overallScore=150))
    result = extract_report(text)
    assert isinstance(result.error, MalformedReport)
    assert result.error.raw_text == text
    assert any("overallScore" in p for p in result.error.problems)


def test_prepare_runs_before_validation():
    text = json.dumps(make_report_payload(targetUrl="not a url"))

    def stamp(payload):
        return {**payload, "targetUrl": "https://stamped.example"}

    report = extract_report(text, prepare=stamp).unwrap()
    assert report.target_url == "https://stamped.example"


def test_extract_ad_campaign():
    campaign = extract_ad_campaign(AD_TEXT).unwrap()
    assert campaign.headlines[0] == "Fast Local Plumbers"
    assert campaign.keywords == ("emergency plumber",)


def test_extraction_unwrap_value():
    assert Extraction(value=3).unwrap() == 3


def test_reparse_of_own_serialization_is_unchanged():
    extractor = FenceSliceExtractor()
    parsed = extractor.extract("Here is the result:\n" + make_report_text())
    assert extractor.extract(json.dumps(parsed)) == parsed
    assert parsed["overallScore"] == 72
