"""HTTP surface: heartbeat ingest, status page and deregistration."""

import logging
from typing import Optional

from fastapi import FastAPI, Query, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse

from pulsewatch import __version__
from pulsewatch.ledger import Ledger
from pulsewatch.models import AccessRecord
from pulsewatch.records import emit_record
from pulsewatch.status_page import StatusRenderError, render_status_html

_log = logging.getLogger("pulsewatch")


def _origin(request: Request) -> str:
    client = request.client
    if client is None:
        return ""
    return f"{client.host}:{client.port}"


def create_app(ledger: Ledger, config: Optional[dict] = None) -> FastAPI:
    """Build the application around an existing *ledger*."""
    config = config or {}
    template_path = config.get("server", {}).get("status_template") or None

    app = FastAPI(title="pulsewatch", version=__version__,
                  docs_url=None, redoc_url=None)
    app.state.ledger = ledger

    @app.api_route("/", methods=["GET", "POST"])
    def ingest(request: Request, program_id: str = Query(default="", alias="id")):
        entry = ledger.record_heartbeat(program_id)
        emit_record(AccessRecord(ip=_origin(request), id=program_id, at=entry.last_seen_at))
        return {"ok": True, "id": program_id}

    @app.get("/status", response_class=HTMLResponse)
    def status_page():
        try:
            body = render_status_html(ledger.entries(), ledger.now(), template_path)
        except StatusRenderError as e:
            _log.error("status page failed: %s", e)
            return PlainTextResponse(
                str(e), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return HTMLResponse(content=body)

    @app.get("/status.json")
    def status_json():
        return {
            "generated_at": ledger.now().isoformat(),
            "programs": [e.to_dict() for e in ledger.entries()],
        }

    @app.delete("/programs/{program_id}")
    def forget(program_id: str):
        if not ledger.forget(program_id):
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"ok": False, "detail": f"unknown program '{program_id}'"},
            )
        _log.info("program '%s' deregistered", program_id)
        return {"ok": True, "id": program_id}

    return app
