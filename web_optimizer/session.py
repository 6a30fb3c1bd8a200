"""Per-browser audit session: the application state machine and its store.

    Idle --submit--> Scanning --success--> Complete --reset--> Idle
                              --failure--> Error    --reset--> Idle

Only one pipeline run can be in flight per session because submit is only
accepted from Idle.
"""

import logging
import secrets
import threading
import time
from collections import OrderedDict
from enum import Enum
from typing import Callable

from .chat import ChatSession
from .config import Settings
from .errors import AuditError, InvalidTransition, ServiceUnavailable
from .gateway import Gateway
from .models import AdCampaign, AuditReport, ChatMessage
from .pipeline import AcquisitionPipeline
from .urls import normalize_target_url

logger = logging.getLogger(__name__)


class AppState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    COMPLETE = "complete"
    ERROR = "error"


TRANSITIONS = {
    AppState.IDLE: {AppState.SCANNING},
    AppState.SCANNING: {AppState.COMPLETE, AppState.ERROR},
    AppState.COMPLETE: {AppState.IDLE},
    AppState.ERROR: {AppState.IDLE},
}


class AuditSession:
    def __init__(self, session_id: str, pipeline: AcquisitionPipeline, gateway: Gateway, settings: Settings):
        self.id = session_id
        self.pipeline = pipeline
        self.gateway = gateway
        self.settings = settings

        self.state = AppState.IDLE
        self.target_url = ""
        self.report: AuditReport | None = None
        self.error: AuditError | None = None
        self.chat_session: ChatSession | None = None
        self.ad_campaign: AdCampaign | None = None
        self.closed = False
        self._lock = threading.Lock()

    # -- transitions -------------------------------------------------------

    def _move(self, new_state: AppState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"Cannot go from {self.state.value} to {new_state.value}.")
        logger.debug("Session %s: %s -> %s", self.id, self.state.value, new_state.value)
        self.state = new_state

    def submit(self, raw_url: str) -> str:
        """
        Validate the URL and enter Scanning. Returns the normalized URL.

        Raises:
            InvalidUrl: input rejected; the session stays Idle.
            InvalidTransition: not Idle (an audit is running or shown).
        """
        with self._lock:
            if self.state is not AppState.IDLE:
                raise InvalidTransition(f"Cannot start an audit while {self.state.value}.")
            url = normalize_target_url(raw_url)
            self._move(AppState.SCANNING)
            self.target_url = url
            self.report = None
            self.error = None
            return url

    def run(self, on_progress: Callable[[str], None] | None = None) -> AuditReport | None:
        """Run the pipeline for the submitted URL and record the outcome."""
        with self._lock:
            if self.state is not AppState.SCANNING:
                raise InvalidTransition("No audit has been submitted.")
            url = self.target_url

        try:
            report = self.pipeline.acquire(url, on_progress=on_progress)
        except AuditError as e:
            self._finish(error=e)
            return None
        except Exception as e:
            logger.exception("Unexpected failure auditing %s", url)
            wrapped = ServiceUnavailable(str(e))
            wrapped.__cause__ = e
            self._finish(error=wrapped)
            return None

        self._finish(report=report)
        return report

    def _finish(self, report: AuditReport | None = None, error: AuditError | None = None) -> None:
        with self._lock:
            if self.closed or self.state is not AppState.SCANNING:
                logger.info("Session %s: discarding result for %s", self.id, self.target_url)
                return
            if report is not None:
                self.report = report
                self.chat_session = ChatSession(self.gateway, report, self.settings)
                self.ad_campaign = None
                self._move(AppState.COMPLETE)
            else:
                self.error = error
                logger.error("Session %s: audit of %s failed (%s)", self.id, self.target_url, error.kind)
                self._move(AppState.ERROR)

    def reset(self) -> None:
        """Complete/Error -> Idle. Drops the report, chat and ads."""
        with self._lock:
            self._move(AppState.IDLE)
            self.target_url = ""
            self.report = None
            self.error = None
            self.chat_session = None
            self.ad_campaign = None

    def close(self) -> None:
        with self._lock:
            self.closed = True
            self.chat_session = None

    # -- actions on a complete report --------------------------------------

    def _require_complete(self) -> AuditReport:
        if self.state is not AppState.COMPLETE or self.report is None:
            raise InvalidTransition("No completed audit in this session.")
        return self.report

    def chat(self, message: str) -> tuple[ChatMessage, tuple[ChatMessage, ...]]:
        """Send a chat message. Returns the reply and the conversation it belongs to."""
        with self._lock:
            self._require_complete()
            chat_session = self.chat_session
        if chat_session is None:
            raise InvalidTransition("This session has been closed.")
        reply = chat_session.send(message)
        return reply, chat_session.history

    def generate_ads(self) -> AdCampaign:
        with self._lock:
            report = self._require_complete()
        campaign = self.pipeline.create_ad_campaign(report.target_url, report.keywords)
        with self._lock:
            if self.report is report:
                self.ad_campaign = campaign
        return campaign

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "id": self.id,
                "state": self.state.value,
                "targetUrl": self.target_url,
                "error": (
                    {"kind": self.error.kind, "message": self.error.user_message} if self.error else None
                ),
                "report": self.report.to_dict() if self.report else None,
                "chat": [m.to_dict() for m in self.chat_session.history] if self.chat_session else [],
                "adCampaign": self.ad_campaign.to_dict() if self.ad_campaign else None,
            }


class SessionStore:
    """
    In-memory sessions keyed by a random id. Nothing is persisted.

    Sessions idle for longer than `ttl_seconds` are evicted, and once
    `max_sessions` are open the least recently used one makes room for a new
    one. Evicted sessions are closed, so a run still in flight for them is
    discarded when it finishes.
    """

    def __init__(
        self,
        session_factory: Callable[[str], AuditSession],
        ttl_seconds: float | None = None,
        max_sessions: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._factory = session_factory
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self._clock = clock
        # Least recently used first.
        self._sessions: OrderedDict[str, AuditSession] = OrderedDict()
        self._last_access: dict[str, float] = {}
        self._lock = threading.Lock()

    def create(self) -> AuditSession:
        session_id = secrets.token_urlsafe(16)
        session = self._factory(session_id)
        with self._lock:
            evicted = self._expire()
            while self.max_sessions and len(self._sessions) >= self.max_sessions:
                evicted.append(self._pop(next(iter(self._sessions))))
            self._sessions[session_id] = session
            self._last_access[session_id] = self._clock()
        self._close_evicted(evicted)
        return session

    def get(self, session_id: str) -> AuditSession:
        """Raises KeyError for unknown or expired ids."""
        with self._lock:
            evicted = self._expire()
            session = self._sessions.get(session_id)
            if session is not None:
                self._sessions.move_to_end(session_id)
                self._last_access[session_id] = self._clock()
        self._close_evicted(evicted)
        if session is None:
            raise KeyError(session_id)
        return session

    def close(self, session_id: str) -> None:
        with self._lock:
            session = self._pop(session_id)
        if session is not None:
            session.close()

    def __len__(self) -> int:
        return len(self._sessions)

    def _pop(self, session_id: str) -> AuditSession | None:
        self._last_access.pop(session_id, None)
        return self._sessions.pop(session_id, None)

    def _expire(self) -> list[AuditSession]:
        if not self.ttl_seconds:
            return []
        cutoff = self._clock() - self.ttl_seconds
        expired = [sid for sid, seen in self._last_access.items() if seen < cutoff]
        return [self._pop(sid) for sid in expired]

    def _close_evicted(self, sessions: list[AuditSession]) -> None:
        for session in sessions:
            logger.info("Session %s evicted", session.id)
            session.close()


def session_factory(gateway: Gateway, settings: Settings) -> Callable[[str], AuditSession]:
    pipeline = AcquisitionPipeline(gateway, settings)

    def _make(session_id: str) -> AuditSession:
        return AuditSession(session_id, pipeline, gateway, settings)

    return _make
