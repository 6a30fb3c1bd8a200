import copy
import json

import pytest

from web_optimizer.config import Settings
from web_optimizer.gateway import Gateway
from web_optimizer.models import SECTION_TITLES


# -----------------------------
# Test doubles
# -----------------------------
class FakeGateway(Gateway):
    """
    Scripted gateway. Each entry in `responses` is either a string (returned)
    or an exception instance (raised), consumed in call order.
    """

    def __init__(self, responses=None, replies=None):
        self.responses = list(responses or [])
        self.replies = list(replies or [])
        self.calls = []
        self.conversations = []

    def generate(self, system, prompt, *, use_search=False, temperature=0.3):
        self.calls.append({"system": system, "prompt": prompt, "use_search": use_search, "temperature": temperature})
        if not self.responses:
            raise AssertionError("FakeGateway.generate called more times than scripted")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def converse(self, system, messages, *, temperature=0.7):
        self.conversations.append({"system": system, "messages": copy.deepcopy(messages), "temperature": temperature})
        if not self.replies:
            raise AssertionError("FakeGateway.converse called more times than scripted")
        item = self.replies.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


# -----------------------------
# Helpers
# -----------------------------
def make_report_payload(url="https://example.com", **overrides) -> dict:
    sections = []
    for i, title in enumerate(SECTION_TITLES, start=1):
        sections.append({
            "id": str(i),
            "title": title,
            "score": 6,
            "summary": f"Summary for {title}.",
            "findings": [f"Finding {i}a", f"Finding {i}b"],
            "recommendations": [{
                "issue": f"Issue {i}",
                "fix": f"Fix {i}",
                "impact": "High",
                "difficulty": "Easy",
            }],
        })

    payload = {
        "schemaVersion": 1,
        "targetUrl": url,
        "overallScore": 72,
        "nicheDetected": "Local plumbing",
        "userPerception": "Looks trustworthy but dated.",
        "executiveSummary": "Solid foundations, weak local signals.",
        "quickWins": ["Add a click-to-call button", "Fix the title tag"],
        "roiEstimate": {
            "trafficGain": "+25%",
            "leadIncrease": "+10 leads/mo",
            "revenueProjection": "$4,000/mo",
        },
        "implementationPlan": [
            {"week": 1, "focus": "Technical fixes", "tasks": ["Compress images", "Fix redirects"]},
            {"week": 2, "focus": "Content", "tasks": ["Write service pages"]},
        ],
        "keywords": ["emergency plumber", "boiler repair"],
        "keyPhrases": ["24 hour plumber near me"],
        "contentStrategy": {
            "topicClusters": ["Boilers", "Leaks"],
            "blogTitles": ["How to bleed a radiator", "Signs of a hidden leak"],
        },
        "keywordStrategy": "Own the emergency intent keywords first.",
        "sections": sections,
        "scanDate": "2026-01-15",
    }
    payload.update(overrides)
    return payload


def make_report_text(url="https://example.com", **overrides) -> str:
    return "```json\n" + json.dumps(make_report_payload(url, **overrides)) + "\n```"


AD_TEXT = json.dumps({
    "headlines": ["Fast Local Plumbers", "24/7 Emergency Help"],
    "descriptions": ["Licensed plumbers at your door in an hour. Call now for a free quote."],
    "keywords": ["emergency plumber"],
})


@pytest.fixture
def settings():
    return Settings(api_key="test-key")


@pytest.fixture
def report_payload():
    return make_report_payload()
