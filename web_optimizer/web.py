"""FastAPI web app: audit API, report exports and the static single-page UI."""

import asyncio
import json
import logging
from pathlib import Path

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse, Response, StreamingResponse
from fastapi.staticfiles import StaticFiles

from .config import Settings, load_settings
from .errors import (
    AuditError,
    ChatBusy,
    ConfigurationError,
    InvalidTransition,
    InvalidUrl,
    ServiceUnavailable,
)
from .export import json_filename, pdf_filename, report_to_json, write_report_pdf
from .gateway import AnthropicGateway, Gateway
from .session import AuditSession, SessionStore, session_factory

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"
INDEX_FILE = STATIC_DIR / "index.html"

_ERROR_STATUS = {
    InvalidUrl: 422,
    InvalidTransition: 409,
    ChatBusy: 409,
    ConfigurationError: 503,
}


def _status_for(error: AuditError) -> int:
    for cls, status in _ERROR_STATUS.items():
        if isinstance(error, cls):
            return status
    return 502


def _sse(event: str, data: str) -> str:
    return f"event: {event}\ndata: {data}\n\n"


def create_app(settings: Settings | None = None, gateway: Gateway | None = None) -> FastAPI:
    settings = settings or load_settings()
    gateway = gateway or AnthropicGateway(settings)

    app = FastAPI(title="Web Optimizer Pro")
    app.state.settings = settings
    app.state.sessions = SessionStore(
        session_factory(gateway, settings),
        ttl_seconds=settings.session_ttl_seconds,
        max_sessions=settings.max_sessions,
    )

    def _session(session_id: str) -> AuditSession:
        try:
            return app.state.sessions.get(session_id)
        except KeyError:
            raise HTTPException(status_code=404, detail="Unknown session.") from None

    @app.exception_handler(AuditError)
    async def audit_error_handler(request: Request, exc: AuditError):
        return JSONResponse(
            {"kind": exc.kind, "error": exc.user_message},
            status_code=_status_for(exc),
        )

    @app.post("/api/sessions")
    async def create_session():
        session = app.state.sessions.create()
        logger.info("Session %s created (%d open)", session.id, len(app.state.sessions))
        return {"id": session.id}

    @app.get("/api/sessions/{session_id}")
    async def get_session(session_id: str):
        return _session(session_id).snapshot()

    @app.post("/api/sessions/{session_id}/close")
    async def close_session(session_id: str):
        app.state.sessions.close(session_id)
        logger.info("Session %s closed", session_id)
        return {"closed": True}

    @app.post("/api/sessions/{session_id}/reset")
    async def reset_session(session_id: str):
        session = _session(session_id)
        session.reset()
        return session.snapshot()

    @app.get("/api/sessions/{session_id}/audit")
    async def audit(session_id: str, url: str = ""):
        """Run an audit via Server-Sent Events."""
        session = _session(session_id)

        async def event_stream():
            try:
                target = session.submit(url)
            except AuditError as e:
                yield _sse("error", json.dumps({"kind": e.kind, "message": e.user_message}))
                return

            yield _sse("progress", f"Auditing {target}...")

            loop = asyncio.get_running_loop()
            queue: asyncio.Queue[str] = asyncio.Queue()

            def on_progress(msg: str):
                loop.call_soon_threadsafe(queue.put_nowait, msg)

            # The worker finishes and records its result even if the client goes away.
            task = asyncio.ensure_future(asyncio.to_thread(session.run, on_progress))
            while not task.done() or not queue.empty():
                try:
                    msg = await asyncio.wait_for(queue.get(), timeout=0.25)
                except asyncio.TimeoutError:
                    continue
                yield _sse("progress", msg)

            report = task.result()
            if report is not None:
                yield _sse("complete", json.dumps(report.to_dict()))
            else:
                error = session.error or ServiceUnavailable("The session was closed before the audit finished.")
                yield _sse("error", json.dumps({"kind": error.kind, "message": error.user_message}))

        return StreamingResponse(
            event_stream(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "X-Accel-Buffering": "no",
            },
        )

    @app.post("/api/sessions/{session_id}/chat")
    def chat(session_id: str, message: str = Body(..., embed=True)):
        session = _session(session_id)
        try:
            reply, history = session.chat(message)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from None
        return {
            "reply": reply.to_dict(),
            "history": [m.to_dict() for m in history],
        }

    @app.post("/api/sessions/{session_id}/ads")
    def ads(session_id: str):
        campaign = _session(session_id).generate_ads()
        return campaign.to_dict()

    @app.get("/api/sessions/{session_id}/report.json")
    async def download_json(session_id: str):
        report = _session(session_id).report
        if report is None:
            raise HTTPException(status_code=404, detail="No report in this session.")
        return Response(
            report_to_json(report),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{json_filename(report)}"'},
        )

    @app.get("/api/sessions/{session_id}/report.pdf")
    def download_pdf(session_id: str):
        report = _session(session_id).report
        if report is None:
            raise HTTPException(status_code=404, detail="No report in this session.")
        return Response(
            write_report_pdf(report),
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="{pdf_filename(report)}"'},
        )

    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    @app.get("/{full_path:path}", include_in_schema=False)
    async def index(full_path: str):
        # Client-side routes fall back to the root document.
        if full_path.startswith("api/"):
            raise HTTPException(status_code=404, detail="Not found.")
        return FileResponse(INDEX_FILE, media_type="text/html")

    return app


app = create_app()
