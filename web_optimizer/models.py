"""Report schema: the shape of an audit result, shared by every other module.

Wire names are camelCase (what the model is asked to emit); attributes are
snake_case. Sequences are tuples and every class is frozen, so a report is
never mutated after it is built. A new audit builds a new report.
"""

from dataclasses import dataclass, field
from datetime import datetime


SCHEMA_VERSION = 1

IMPACT_LEVELS = ("High", "Medium", "Low")
DIFFICULTY_LEVELS = ("Easy", "Medium", "Hard")
CHAT_ROLES = ("user", "model")

SECTION_TITLES = (
    "Initial Site Overview & Design",
    "Technical & Performance",
    "AI Visibility (LLM Optimization)",
    "Voice Search Readiness",
    "User Intent & Conversion",
    "Trust & Social Proof",
    "Local SEO",
    "Content Depth",
    "Competitor Differentiation",
    "Scoring & Prioritisation",
)
SECTION_IDS = tuple(str(i) for i in range(1, len(SECTION_TITLES) + 1))


@dataclass(frozen=True)
class Recommendation:
    issue: str
    fix: str
    impact: str  # one of IMPACT_LEVELS
    difficulty: str  # one of DIFFICULTY_LEVELS
    keywords: tuple[str, ...] | None = None

    def to_dict(self) -> dict:
        return {
            "issue": self.issue,
            "fix": self.fix,
            "impact": self.impact,
            "difficulty": self.difficulty,
            "keywords": list(self.keywords) if self.keywords is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Recommendation":
        keywords = data.get("keywords")
        return cls(
            issue=data["issue"],
            fix=data["fix"],
            impact=data["impact"],
            difficulty=data["difficulty"],
            keywords=tuple(keywords) if keywords is not None else None,
        )


@dataclass(frozen=True)
class AuditSection:
    id: str  # "1".."10"
    title: str
    score: int  # 1-10
    summary: str
    findings: tuple[str, ...] = ()
    recommendations: tuple[Recommendation, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "score": self.score,
            "summary": self.summary,
            "findings": list(self.findings),
            "recommendations": [r.to_dict() for r in self.recommendations],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuditSection":
        return cls(
            id=data["id"],
            title=data["title"],
            score=data["score"],
            summary=data["summary"],
            findings=tuple(data.get("findings") or ()),
            recommendations=tuple(Recommendation.from_dict(r) for r in data.get("recommendations") or ()),
        )


@dataclass(frozen=True)
class RoiEstimate:
    traffic_gain: str
    lead_increase: str
    revenue_projection: str

    def to_dict(self) -> dict:
        return {
            "trafficGain": self.traffic_gain,
            "leadIncrease": self.lead_increase,
            "revenueProjection": self.revenue_projection,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RoiEstimate":
        return cls(
            traffic_gain=data.get("trafficGain", ""),
            lead_increase=data.get("leadIncrease", ""),
            revenue_projection=data.get("revenueProjection", ""),
        )


@dataclass(frozen=True)
class ImplementationStep:
    week: int
    focus: str
    tasks: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"week": self.week, "focus": self.focus, "tasks": list(self.tasks)}

    @classmethod
    def from_dict(cls, data: dict) -> "ImplementationStep":
        return cls(week=data["week"], focus=data["focus"], tasks=tuple(data.get("tasks") or ()))


@dataclass(frozen=True)
class ContentStrategy:
    topic_clusters: tuple[str, ...] = ()
    blog_titles: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"topicClusters": list(self.topic_clusters), "blogTitles": list(self.blog_titles)}

    @classmethod
    def from_dict(cls, data: dict) -> "ContentStrategy":
        return cls(
            topic_clusters=tuple(data.get("topicClusters") or ()),
            blog_titles=tuple(data.get("blogTitles") or ()),
        )


@dataclass(frozen=True)
class AuditReport:
    target_url: str
    overall_score: int  # 0-100
    executive_summary: str
    sections: tuple[AuditSection, ...]
    niche_detected: str = ""
    user_perception: str = ""
    quick_wins: tuple[str, ...] = ()
    roi_estimate: RoiEstimate | None = None
    implementation_plan: tuple[ImplementationStep, ...] = ()
    keywords: tuple[str, ...] = ()  # commercial "money" keywords
    key_phrases: tuple[str, ...] = ()  # long-tail phrases
    content_strategy: ContentStrategy | None = None
    keyword_strategy: str = ""
    scan_date: str = ""
    schema_version: int = SCHEMA_VERSION

    @property
    def finding_count(self) -> int:
        return sum(len(s.findings) for s in self.sections)

    def all_findings(self) -> list[str]:
        """Findings flattened in section order."""
        return [f for s in self.sections for f in s.findings]

    def section(self, section_id: str) -> AuditSection | None:
        for s in self.sections:
            if s.id == section_id:
                return s
        return None

    def to_dict(self) -> dict:
        """camelCase dict in export key order."""
        return {
            "schemaVersion": self.schema_version,
            "targetUrl": self.target_url,
            "overallScore": self.overall_score,
            "nicheDetected": self.niche_detected,
            "userPerception": self.user_perception,
            "executiveSummary": self.executive_summary,
            "quickWins": list(self.quick_wins),
            "roiEstimate": self.roi_estimate.to_dict() if self.roi_estimate else None,
            "implementationPlan": [step.to_dict() for step in self.implementation_plan],
            "keywords": list(self.keywords),
            "keyPhrases": list(self.key_phrases),
            "contentStrategy": self.content_strategy.to_dict() if self.content_strategy else None,
            "keywordStrategy": self.keyword_strategy,
            "sections": [s.to_dict() for s in self.sections],
            "scanDate": self.scan_date,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuditReport":
        """Rebuild from an already-validated dict (see validation.validate_report)."""
        roi = data.get("roiEstimate")
        strategy = data.get("contentStrategy")
        return cls(
            schema_version=data.get("schemaVersion", SCHEMA_VERSION),
            target_url=data["targetUrl"],
            overall_score=data["overallScore"],
            niche_detected=data.get("nicheDetected") or "",
            user_perception=data.get("userPerception") or "",
            executive_summary=data["executiveSummary"],
            quick_wins=tuple(data.get("quickWins") or ()),
            roi_estimate=RoiEstimate.from_dict(roi) if roi is not None else None,
            implementation_plan=tuple(ImplementationStep.from_dict(s) for s in data.get("implementationPlan") or ()),
            keywords=tuple(data.get("keywords") or ()),
            key_phrases=tuple(data.get("keyPhrases") or ()),
            content_strategy=ContentStrategy.from_dict(strategy) if strategy is not None else None,
            keyword_strategy=data.get("keywordStrategy") or "",
            sections=tuple(AuditSection.from_dict(s) for s in data["sections"]),
            scan_date=data.get("scanDate") or "",
        )


@dataclass(frozen=True)
class AdCampaign:
    headlines: tuple[str, ...]  # <=30 chars each, by prompt instruction only
    descriptions: tuple[str, ...]  # <=90 chars each
    keywords: tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            "headlines": list(self.headlines),
            "descriptions": list(self.descriptions),
            "keywords": list(self.keywords),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AdCampaign":
        return cls(
            headlines=tuple(data["headlines"]),
            descriptions=tuple(data["descriptions"]),
            keywords=tuple(data["keywords"]),
        )


@dataclass(frozen=True)
class ChatMessage:
    role: str  # one of CHAT_ROLES
    text: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {"role": self.role, "text": self.text, "timestamp": self.timestamp.isoformat(timespec="seconds")}
