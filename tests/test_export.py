import json
import sys
import types

import pytest

from web_optimizer.export import (
    json_filename,
    pdf_filename,
    render_report_html,
    report_to_json,
    write_report_pdf,
)
from web_optimizer.models import AuditReport
from web_optimizer.validation import validate_report

from conftest import make_report_payload


@pytest.fixture
def report():
    return validate_report(make_report_payload(url="https://www.example.com/services"))


def test_json_round_trip(report):
    text = report_to_json(report)
    assert text.startswith('{\n  "schemaVersion": 1,\n  "targetUrl"')
    assert AuditReport.from_dict(json.loads(text)) == report


def test_json_keeps_non_ascii():
    report = validate_report(make_report_payload(executiveSummary="Café menus need schema."))
    assert "Café" in report_to_json(report)


def test_filenames(report):
    assert json_filename(report) == "audit_report_www.example.com.json"
    assert pdf_filename(report) == "Audit_Report_www.example.com.pdf"


def test_html_covers_report(report):
    html = render_report_html(report)
    for text in (
        "72",
        "Local plumbing",
        "Looks trustworthy but dated.",
        "+10 leads/mo",
        "Add a click-to-call button",
        "emergency plumber",
        "How to bleed a radiator",
        "24 hour plumber near me",
        "Week 1: Technical fixes",
        "Compress images",
        "Competitor Differentiation",
        "Finding 10b",
        "Score: 6/10",
    ):
        assert text in html


def test_html_footer_has_page_counter_and_host(report):
    html = render_report_html(report)
    assert 'counter(page) " of " counter(pages) " | Web Optimizer Pro Audit: www.example.com"' in html


def test_html_escapes_model_text():
    report = validate_report(make_report_payload(executiveSummary="<script>alert(1)</script>"))
    html = render_report_html(report)
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_html_handles_sparse_report():
    payload = make_report_payload()
    for key in ("roiEstimate", "contentStrategy", "implementationPlan", "keywords", "quickWins"):
        payload.pop(key)
    html = render_report_html(validate_report(payload))
    assert "No ROI estimate was provided." in html
    assert "No implementation plan was provided." in html


def test_write_report_pdf(report, tmp_path, monkeypatch):
    rendered = []

    class FakeHTML:
        def __init__(self, string):
            rendered.append(string)

        def write_pdf(self):
            return b"%PDF-fake"

    monkeypatch.setitem(sys.modules, "weasyprint", types.SimpleNamespace(HTML=FakeHTML))

    out = tmp_path / "report.pdf"
    assert write_report_pdf(report, out) == b"%PDF-fake"
    assert out.read_bytes() == b"%PDF-fake"
    assert "Detailed Audit Findings" in rendered[0]


def test_filenames_for_unicode_host_are_ascii():
    report = validate_report(make_report_payload(url="https://例子.测试"))
    assert json_filename(report) == "audit_report_xn--fsqu00a.xn--0zwm56d.json"
    assert pdf_filename(report) == "Audit_Report_xn--fsqu00a.xn--0zwm56d.pdf"
