"""FastAPI application serving a computed update plan.

Endpoints:
- ``GET /`` — minimal HTML listing of the planned changes
- ``GET /api/plan`` — the full inspect payload
- ``GET /api/changes`` — change summaries without contents
- ``GET /api/changes/{path}`` — one change with both sides of the content
"""

from __future__ import annotations

from html import escape

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse

from bzsync import __version__
from bzsync.web.models import ChangeResponse, ChangeSummaryResponse, InspectPayload

router = APIRouter(tags=["inspect"])


def _payload(request: Request) -> InspectPayload:
    return request.app.state.payload


@router.get("/api/plan", response_model=InspectPayload, summary="Full update plan")
async def get_plan(request: Request):
    return _payload(request)


@router.get(
    "/api/changes",
    response_model=list[ChangeSummaryResponse],
    summary="List planned changes",
)
async def list_changes(request: Request, conflicts_only: bool = False):
    """List planned changes, optionally only the conflicted ones."""
    changes = _payload(request).changes
    if conflicts_only:
        changes = [c for c in changes if c.conflict_reason]
    return [
        ChangeSummaryResponse(
            path=c.path,
            type=c.type,
            ownership=c.ownership,
            conflict_reason=c.conflict_reason,
        )
        for c in changes
    ]


@router.get(
    "/api/changes/{change_path:path}",
    response_model=ChangeResponse,
    summary="Get one planned change",
)
async def get_change(change_path: str, request: Request):
    for change in _payload(request).changes:
        if change.path == change_path:
            return change
    raise HTTPException(status_code=404, detail=f"No planned change for '{change_path}'")


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index(request: Request):
    payload = _payload(request)
    rows = "\n".join(
        "<tr><td>{type}</td><td><a href=\"/api/changes/{path}\">{path}</a></td>"
        "<td>{ownership}</td><td>{reason}</td></tr>".format(
            type=escape(c.type),
            path=escape(c.path),
            ownership=escape(c.ownership),
            reason=escape(c.conflict_reason or ""),
        )
        for c in payload.changes
    )
    return f"""<!doctype html>
<html>
<head><meta charset="utf-8"><title>Template sync plan</title></head>
<body>
<h1>Template sync plan</h1>
<p>{escape(payload.from_version)} &rarr; {escape(payload.to_version)}:
{payload.total_changes} change(s), {payload.conflicts} conflict(s),
{payload.skipped_unchanged_template_files} unchanged</p>
<table>
<thead><tr><th>Type</th><th>Path</th><th>Ownership</th><th>Conflict</th></tr></thead>
<tbody>
{rows}
</tbody>
</table>
</body>
</html>
"""


def create_app(payload: InspectPayload | dict) -> FastAPI:
    """Build the viewer app for a single plan payload."""
    if isinstance(payload, dict):
        payload = InspectPayload.model_validate(payload)

    app = FastAPI(
        title="bzsync inspect",
        description="Local viewer for a template update plan.",
        version=__version__,
    )
    app.state.payload = payload
    app.include_router(router)
    return app
