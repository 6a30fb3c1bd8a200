"""Structural checks that turn parsed model JSON into schema objects.

Parsing only proves the text was JSON. These checks prove it is a report:
required fields, the ten section ids, score ranges and enum members. Optional
fields may be missing or null and are filled with empty values.
"""

from .errors import MalformedReport
from .models import (
    DIFFICULTY_LEVELS,
    IMPACT_LEVELS,
    SCHEMA_VERSION,
    SECTION_IDS,
    AdCampaign,
    AuditReport,
)
from .urls import is_absolute_http_url


def validate_report(payload: dict, raw_text: str = "") -> AuditReport:
    """
    Validate a parsed payload and build an AuditReport.

    Legacy payloads (no schemaVersion) are upgraded first. Every problem found
    is collected so the diagnostic log shows the whole picture at once.

    Raises:
        MalformedReport: with `problems` listing each failed check.
    """
    if not isinstance(payload, dict):
        raise MalformedReport("Report payload is not a JSON object.", raw_text=raw_text)

    if "schemaVersion" not in payload:
        payload = upgrade_legacy_report(payload)

    problems: list[str] = []
    clean: dict = {}

    version = payload.get("schemaVersion")
    if version != SCHEMA_VERSION or isinstance(version, bool):
        problems.append(f"unsupported schemaVersion {version!r} (expected {SCHEMA_VERSION})")
    clean["schemaVersion"] = SCHEMA_VERSION

    target_url = payload.get("targetUrl")
    if not isinstance(target_url, str) or not is_absolute_http_url(target_url):
        problems.append(f"targetUrl must be an absolute http(s) URL, got {target_url!r}")
    clean["targetUrl"] = target_url

    clean["overallScore"] = _int_in_range(payload.get("overallScore"), 0, 100, "overallScore", problems)

    summary = payload.get("executiveSummary")
    if not isinstance(summary, str):
        problems.append("executiveSummary must be a string")
    clean["executiveSummary"] = summary

    for key in ("nicheDetected", "userPerception", "keywordStrategy", "scanDate"):
        clean[key] = _optional_str(payload, key, problems)
    for key in ("quickWins", "keywords", "keyPhrases"):
        clean[key] = _optional_str_list(payload, key, problems)

    clean["roiEstimate"] = _roi_estimate(payload.get("roiEstimate"), problems)
    clean["implementationPlan"] = _implementation_plan(payload.get("implementationPlan"), problems)
    clean["contentStrategy"] = _content_strategy(payload.get("contentStrategy"), problems)
    clean["sections"] = _sections(payload.get("sections"), problems)

    if problems:
        raise MalformedReport(
            f"Report failed validation: {'; '.join(problems)}",
            raw_text=raw_text,
            problems=problems,
        )
    return AuditReport.from_dict(clean)


def upgrade_legacy_report(payload: dict) -> dict:
    """Bring a pre-versioned report up to the current schema.

    Earlier prompts named section findings `weaknesses`.
    """
    upgraded = dict(payload)
    sections = upgraded.get("sections")
    if isinstance(sections, list):
        new_sections = []
        for section in sections:
            if isinstance(section, dict) and "findings" not in section and "weaknesses" in section:
                section = dict(section)
                section["findings"] = section.pop("weaknesses")
            new_sections.append(section)
        upgraded["sections"] = new_sections
    upgraded["schemaVersion"] = SCHEMA_VERSION
    return upgraded


def validate_ad_campaign(payload: dict, raw_text: str = "") -> AdCampaign:
    problems: list[str] = []
    if not isinstance(payload, dict):
        raise MalformedReport("Ad campaign payload is not a JSON object.", raw_text=raw_text)
    for key in ("headlines", "descriptions", "keywords"):
        value = payload.get(key)
        if not _is_str_list(value):
            problems.append(f"{key} must be a list of strings")
    if problems:
        raise MalformedReport(
            f"Ad campaign failed validation: {'; '.join(problems)}",
            raw_text=raw_text,
            problems=problems,
        )
    return AdCampaign.from_dict(payload)


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _is_str_list(value) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def _int_in_range(value, low: int, high: int, label: str, problems: list[str]) -> int | None:
    # Integral floats (72.0) are accepted; bools and numeric strings are not.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        problems.append(f"{label} must be an integer, got {value!r}")
        return None
    if isinstance(value, float):
        if not value.is_integer():
            problems.append(f"{label} must be an integer, got {value!r}")
            return None
        value = int(value)
    if not low <= value <= high:
        problems.append(f"{label} must be between {low} and {high}, got {value}")
        return None
    return value


def _optional_str(data: dict, key: str, problems: list[str], label: str | None = None) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        problems.append(f"{label or key} must be a string")
        return ""
    return value


def _optional_str_list(data: dict, key: str, problems: list[str], label: str | None = None) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not _is_str_list(value):
        problems.append(f"{label or key} must be a list of strings")
        return []
    return value


def _roi_estimate(value, problems: list[str]) -> dict | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        problems.append("roiEstimate must be an object")
        return None
    return {
        key: _optional_str(value, key, problems, f"roiEstimate.{key}")
        for key in ("trafficGain", "leadIncrease", "revenueProjection")
    }


def _implementation_plan(value, problems: list[str]) -> list[dict]:
    if value is None:
        return []
    if not isinstance(value, list):
        problems.append("implementationPlan must be a list")
        return []
    steps = []
    for i, step in enumerate(value):
        label = f"implementationPlan[{i}]"
        if not isinstance(step, dict):
            problems.append(f"{label} must be an object")
            continue
        steps.append({
            "week": _int_in_range(step.get("week"), 1, 52, f"{label}.week", problems),
            "focus": _optional_str(step, "focus", problems, f"{label}.focus"),
            "tasks": _optional_str_list(step, "tasks", problems, f"{label}.tasks"),
        })
    return steps


def _content_strategy(value, problems: list[str]) -> dict | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        problems.append("contentStrategy must be an object")
        return None
    return {
        "topicClusters": _optional_str_list(value, "topicClusters", problems, "contentStrategy.topicClusters"),
        "blogTitles": _optional_str_list(value, "blogTitles", problems, "contentStrategy.blogTitles"),
    }


def _enum_member(value, allowed: tuple[str, ...], label: str, problems: list[str]) -> str | None:
    if isinstance(value, str):
        for member in allowed:
            if value.strip().lower() == member.lower():
                return member
    problems.append(f"{label} must be one of {', '.join(allowed)}, got {value!r}")
    return None


def _recommendation(rec, label: str, problems: list[str]) -> dict | None:
    if not isinstance(rec, dict):
        problems.append(f"{label} must be an object")
        return None
    for key in ("issue", "fix"):
        if not isinstance(rec.get(key), str):
            problems.append(f"{label}.{key} must be a string")
    keywords = rec.get("keywords")
    if keywords is not None and not _is_str_list(keywords):
        problems.append(f"{label}.keywords must be a list of strings")
        keywords = None
    return {
        "issue": rec.get("issue"),
        "fix": rec.get("fix"),
        "impact": _enum_member(rec.get("impact"), IMPACT_LEVELS, f"{label}.impact", problems),
        "difficulty": _enum_member(rec.get("difficulty"), DIFFICULTY_LEVELS, f"{label}.difficulty", problems),
        "keywords": keywords,
    }


def _sections(value, problems: list[str]) -> list[dict]:
    if not isinstance(value, list):
        problems.append("sections must be a list")
        return []

    sections: dict[str, dict] = {}
    for i, section in enumerate(value):
        label = f"sections[{i}]"
        if not isinstance(section, dict):
            problems.append(f"{label} must be an object")
            continue

        raw_id = section.get("id")
        section_id = str(raw_id) if isinstance(raw_id, (str, int)) and not isinstance(raw_id, bool) else None
        if section_id not in SECTION_IDS:
            problems.append(f"{label}.id must be one of 1..{len(SECTION_IDS)}, got {raw_id!r}")
            continue
        if section_id in sections:
            problems.append(f"duplicate section id {section_id}")
            continue

        title = section.get("title")
        summary = section.get("summary")
        if not isinstance(title, str):
            problems.append(f"{label}.title must be a string")
        if not isinstance(summary, str):
            problems.append(f"{label}.summary must be a string")

        recs_raw = section.get("recommendations")
        if recs_raw is None:
            recs_raw = []
        if not isinstance(recs_raw, list):
            problems.append(f"{label}.recommendations must be a list")
            recs_raw = []
        recs = [_recommendation(r, f"{label}.recommendations[{j}]", problems) for j, r in enumerate(recs_raw)]

        sections[section_id] = {
            "id": section_id,
            "title": title,
            "score": _int_in_range(section.get("score"), 1, 10, f"{label}.score", problems),
            "summary": summary,
            "findings": _optional_str_list(section, "findings", problems, f"{label}.findings"),
            "recommendations": [r for r in recs if r is not None],
        }

    missing = [sid for sid in SECTION_IDS if sid not in sections]
    if missing:
        problems.append(f"sections must contain exactly ids 1..{len(SECTION_IDS)}; missing {', '.join(missing)}")
    return [sections[sid] for sid in SECTION_IDS if sid in sections]
