"""Report exports: JSON download and a WeasyPrint PDF document.

Both are pure functions of the report. The PDF is rendered from an HTML
template; paged-media CSS puts "Page X of Y | ... hostname" in every footer.
"""

import json
from html import escape
from pathlib import Path

from .models import AuditReport
from .urls import ascii_hostname, hostname_of

BRAND = "Web Optimizer Pro"


def report_to_json(report: AuditReport) -> str:
    """Serialize in schema key order with 2-space indentation."""
    return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)


def json_filename(report: AuditReport) -> str:
    return f"audit_report_{ascii_hostname(report.target_url)}.json"


def pdf_filename(report: AuditReport) -> str:
    return f"Audit_Report_{ascii_hostname(report.target_url)}.pdf"


def _score_class(score: int, high: int, mid: int) -> str:
    if score >= high:
        return "good"
    if score >= mid:
        return "warn"
    return "bad"


def _bullets(items, empty: str = "None listed.") -> str:
    if not items:
        return f'<p class="muted">{escape(empty)}</p>'
    return "<ul>" + "".join(f"<li>{escape(item)}</li>" for item in items) + "</ul>"


def _pills(items) -> str:
    if not items:
        return '<span class="muted">-</span>'
    return " ".join(f'<span class="pill">{escape(item)}</span>' for item in items)


def _cover(report: AuditReport, host: str) -> str:
    roi = report.roi_estimate
    if roi:
        metrics = [
            ("Traffic Gain", roi.traffic_gain),
            ("Lead Increase", roi.lead_increase),
            ("Est. Revenue", roi.revenue_projection),
        ]
        roi_html = "".join(
            f'<td class="metric"><div class="metric-label">{label}</div>'
            f'<div class="metric-value">{escape(value or "-")}</div></td>'
            for label, value in metrics
        )
        roi_html = f'<table class="metrics"><tr>{roi_html}</tr></table>'
    else:
        roi_html = '<p class="muted">No ROI estimate was provided.</p>'

    return f"""
    <section class="cover">
        <div class="banner">
            <div class="brand">{BRAND.upper()}</div>
            <div class="banner-meta">
                <div>Scan Date: {escape(report.scan_date)}</div>
                <div>{escape(report.target_url)}</div>
                <div>Schema v{report.schema_version}</div>
            </div>
        </div>

        <div class="score {_score_class(report.overall_score, 80, 50)}">
            <div class="score-number">{report.overall_score}</div>
            <div class="score-label">Overall Score</div>
        </div>

        <p class="niche"><strong>Identified niche:</strong> {escape(report.niche_detected or "-")}</p>
        <blockquote class="perception">{escape(report.user_perception or "No perception analysis provided.")}</blockquote>

        <h2>Projected Impact</h2>
        {roi_html}

        <h2>Executive Summary</h2>
        <p>{escape(report.executive_summary)}</p>

        <h2>Quick Wins</h2>
        {_bullets(report.quick_wins)}
    </section>
    """


def _strategy(report: AuditReport) -> str:
    blog_titles = report.content_strategy.blog_titles if report.content_strategy else ()
    clusters = report.content_strategy.topic_clusters if report.content_strategy else ()

    rows = ""
    for i in range(max(len(report.keywords), len(blog_titles))):
        keyword = report.keywords[i] if i < len(report.keywords) else "-"
        title = blog_titles[i] if i < len(blog_titles) else "-"
        rows += f"<tr><td>{escape(keyword)}</td><td>{escape(title)}</td></tr>"
    if not rows:
        rows = '<tr><td colspan="2" class="muted">No keywords or content topics were provided.</td></tr>'

    return f"""
    <section class="page-break">
        <h1>Keyword Strategy</h1>
        <p class="strategy">{escape(report.keyword_strategy or "No keyword strategy was provided.")}</p>
        <table class="grid">
            <thead><tr><th>High-Intent Commercial Keywords</th><th>Content Topics (Blog)</th></tr></thead>
            <tbody>{rows}</tbody>
        </table>
        <h2>Long-Tail Key Phrases</h2>
        <p>{_pills(report.key_phrases)}</p>
        <h2>Topic Clusters</h2>
        <p>{_pills(clusters)}</p>
    </section>
    """


def _roadmap(report: AuditReport) -> str:
    rows = ""
    for step in report.implementation_plan:
        tasks = step.tasks or ("-",)
        for i, task in enumerate(tasks):
            phase = f"Week {step.week}: {escape(step.focus)}" if i == 0 else ""
            rows += f'<tr><td class="phase">{phase}</td><td>{escape(task)}</td></tr>'
    if not rows:
        rows = '<tr><td colspan="2" class="muted">No implementation plan was provided.</td></tr>'

    return f"""
    <section>
        <h1>Implementation Roadmap</h1>
        <table class="grid">
            <thead><tr><th>Phase</th><th>Action Items</th></tr></thead>
            <tbody>{rows}</tbody>
        </table>
    </section>
    """


def _sections(report: AuditReport) -> str:
    blocks = ""
    for section in report.sections:
        rec_rows = ""
        for rec in section.recommendations:
            keywords = f'<div class="rec-keywords">{_pills(rec.keywords)}</div>' if rec.keywords else ""
            rec_rows += (
                f"<tr><td>{escape(rec.issue)}</td><td>{escape(rec.fix)}{keywords}</td>"
                f'<td class="center">{escape(rec.impact)}</td><td class="center">{escape(rec.difficulty)}</td></tr>'
            )
        if not rec_rows:
            rec_rows = '<tr><td colspan="4" class="muted">No recommendations.</td></tr>'

        blocks += f"""
        <div class="audit-section">
            <div class="section-head {_score_class(section.score, 8, 5)}">
                <span>{escape(section.id)}. {escape(section.title)}</span>
                <span class="section-score">Score: {section.score}/10</span>
            </div>
            <p>{escape(section.summary)}</p>
            <h3>Findings</h3>
            {_bullets(section.findings)}
            <table class="grid recs">
                <thead><tr><th>Issue identified</th><th>Recommended Fix</th><th>Impact</th><th>Difficulty</th></tr></thead>
                <tbody>{rec_rows}</tbody>
            </table>
        </div>
        """

    return f"""
    <section class="page-break">
        <h1>Detailed Audit Findings</h1>
        {blocks}
    </section>
    """


def render_report_html(report: AuditReport) -> str:
    """The full printable document as HTML."""
    host = hostname_of(report.target_url)
    # Goes into a CSS string inside <style>, where HTML entities are not decoded.
    footer = f"{BRAND} Audit: {host}"
    for ch in '"\\<>':
        footer = footer.replace(ch, "")

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{escape(BRAND)} Audit: {escape(host)}</title>
<style>
    @page {{
        size: A4;
        margin: 22mm 18mm 20mm 18mm;
        @bottom-center {{
            content: "Page " counter(page) " of " counter(pages) " | {footer}";
            font-size: 8pt;
            color: #969696;
        }}
    }}

    * {{ margin: 0; padding: 0; box-sizing: border-box; }}

    body {{
        font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
        color: #334155;
        font-size: 10pt;
        line-height: 1.5;
    }}

    h1 {{ font-size: 16pt; color: #2563eb; margin: 0 0 10px 0; }}
    h2 {{ font-size: 13pt; color: #0f172a; margin: 18px 0 8px 0; }}
    h3 {{ font-size: 10pt; color: #0f172a; margin: 8px 0 4px 0; text-transform: uppercase; letter-spacing: 0.05em; }}
    p {{ margin-bottom: 6px; }}
    ul {{ margin: 0 0 6px 18px; }}

    .page-break {{ page-break-before: always; }}
    .muted {{ color: #94a3b8; font-style: italic; }}
    .center {{ text-align: center; }}

    .banner {{
        background: #0f172a;
        color: white;
        padding: 18px 20px;
        display: flex;
        justify-content: space-between;
    }}
    .brand {{ font-size: 20pt; font-weight: 700; }}
    .banner-meta {{ text-align: right; font-size: 9pt; }}

    .score {{
        width: 130px;
        margin: 28px auto 12px auto;
        padding: 18px 0;
        border: 5px solid #94a3b8;
        border-radius: 50%;
        text-align: center;
    }}
    .score-number {{ font-size: 28pt; font-weight: 700; color: #0f172a; }}
    .score-label {{ font-size: 8pt; color: #64748b; letter-spacing: 0.08em; text-transform: uppercase; }}
    .score.good {{ border-color: #10b981; }}
    .score.warn {{ border-color: #f59e0b; }}
    .score.bad {{ border-color: #ef4444; }}

    .niche {{ text-align: center; }}
    .perception {{
        border-left: 4px solid #2563eb;
        background: #eff6ff;
        padding: 10px 14px;
        font-style: italic;
        margin: 8px 0;
    }}

    table {{ width: 100%; border-collapse: collapse; }}
    .metrics td.metric {{ background: #f1f5f9; padding: 10px; border: 4px solid white; width: 33%; }}
    .metric-label {{ font-size: 8pt; color: #64748b; }}
    .metric-value {{ font-size: 11pt; font-weight: 700; color: #2563eb; }}

    .grid th {{ background: #0f172a; color: white; text-align: left; padding: 6px 8px; font-size: 9pt; }}
    .grid td {{ border-bottom: 1px solid #e2e8f0; padding: 6px 8px; vertical-align: top; font-size: 9pt; }}
    .grid td.phase {{ font-weight: 700; width: 35%; }}
    .strategy {{ font-style: italic; margin-bottom: 10px; }}

    .pill {{
        display: inline-block;
        background: #e2e8f0;
        border-radius: 10px;
        padding: 1px 8px;
        margin: 2px 0;
        font-size: 8pt;
    }}

    .audit-section {{ margin-bottom: 18px; page-break-inside: avoid; }}
    .section-head {{
        background: #f0f0f0;
        padding: 6px 10px;
        font-weight: 700;
        color: #0f172a;
        display: flex;
        justify-content: space-between;
        margin-bottom: 6px;
    }}
    .section-head.good .section-score {{ color: #10b981; }}
    .section-head.warn .section-score {{ color: #f59e0b; }}
    .section-head.bad .section-score {{ color: #ef4444; }}
    .recs {{ margin-top: 6px; }}
    .rec-keywords {{ margin-top: 4px; }}
</style>
</head>
<body>
{_cover(report, host)}
{_strategy(report)}
{_roadmap(report)}
{_sections(report)}
</body>
</html>"""


def write_report_pdf(report: AuditReport, output_path: Path | None = None) -> bytes:
    """
    Render the report to PDF.

    Returns the PDF bytes; also writes them to `output_path` when given.
    """
    # WeasyPrint loads pango/cairo at import time.
    from weasyprint import HTML

    pdf_bytes = HTML(string=render_report_html(report)).write_pdf()
    if output_path is not None:
        Path(output_path).write_bytes(pdf_bytes)
    return pdf_bytes
