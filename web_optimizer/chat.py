"""Follow-up chat about one report.

The history is append-only and owned by the session. Chat failures never
propagate: the user gets an apology message in the conversation instead.
"""

import logging
import threading

from .config import Settings
from .errors import ChatBusy
from .gateway import Gateway
from .models import AuditReport, ChatMessage
from .prompts import CHAT_SYSTEM_TEMPLATE

logger = logging.getLogger(__name__)

APOLOGY_TEXT = "I'm having trouble connecting to the core right now."
EMPTY_REPLY_TEXT = "I couldn't process that."

_WIRE_ROLES = {"user": "user", "model": "assistant"}


def build_context_summary(report: AuditReport, max_findings: int = 5) -> str:
    lines = [
        f"Current audit context for {report.target_url}:",
        f"Overall score: {report.overall_score}/100",
    ]
    if report.niche_detected:
        lines.append(f"Niche: {report.niche_detected}")
    lines.append(f"Summary: {report.executive_summary}")
    if report.roi_estimate:
        roi = report.roi_estimate
        lines.append(
            f"ROI estimate: traffic {roi.traffic_gain}; leads {roi.lead_increase}; revenue {roi.revenue_projection}"
        )
    findings = report.all_findings()[:max_findings]
    if findings:
        lines.append("Top findings:")
        lines.extend(f"- {f}" for f in findings)
    if report.keywords:
        lines.append(f"Niche keywords: {', '.join(report.keywords)}")
    return "\n".join(lines)


class ChatSession:
    def __init__(self, gateway: Gateway, report: AuditReport, settings: Settings):
        self.gateway = gateway
        self.report = report
        self.settings = settings
        self.system_prompt = CHAT_SYSTEM_TEMPLATE.format(
            context=build_context_summary(report, settings.chat_findings)
        )
        self._history: list[ChatMessage] = [
            ChatMessage(
                role="model",
                text=(
                    f"Hello! I've analyzed {report.target_url}. I found {report.finding_count} issues. "
                    "Ask me how to fix any of them!"
                ),
            )
        ]
        self._lock = threading.Lock()
        self._pending = False

    @property
    def history(self) -> tuple[ChatMessage, ...]:
        return tuple(self._history)

    @property
    def pending(self) -> bool:
        return self._pending

    def send(self, text: str) -> ChatMessage:
        """
        Append the user's message, ask the model, append and return the reply.

        Raises:
            ValueError: blank message.
            ChatBusy: a reply is still pending.
        """
        text = (text or "").strip()
        if not text:
            raise ValueError("Message is empty.")

        with self._lock:
            if self._pending:
                raise ChatBusy("A reply is already pending.")
            self._pending = True
            self._history.append(ChatMessage(role="user", text=text))
            wire = self._wire_messages()

        try:
            reply_text = self.gateway.converse(
                self.system_prompt, wire, temperature=self.settings.chat_temperature
            )
            reply_text = (reply_text or "").strip() or EMPTY_REPLY_TEXT
        except Exception as e:
            logger.warning("Chat reply for %s failed: %s", self.report.target_url, e)
            reply_text = APOLOGY_TEXT

        reply = ChatMessage(role="model", text=reply_text)
        with self._lock:
            self._history.append(reply)
            self._pending = False
        return reply

    def _wire_messages(self) -> list[dict]:
        # The seeded greeting is local UI text; the provider conversation starts
        # at the first user turn.
        first_user = next(i for i, m in enumerate(self._history) if m.role == "user")
        return [
            {"role": _WIRE_ROLES[m.role], "content": m.text}
            for m in self._history[first_user:]
        ]
