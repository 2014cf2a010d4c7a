"""Admin API routes: session, login/logout, stats, registration list, CSV export, lifecycle actions."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from camp import registration_service
from camp.export import iter_csv_lines
from camp.retry import RetryExhaustedError
from camp.stats import compute_stats
from camp.store import StatusTransitionError
from web.api.utils import read_json_body, registration_to_dict
from web.auth import (
    clear_session_cookie,
    credentials_match,
    is_admin_authenticated,
    issue_admin_token,
    require_admin,
    set_session_cookie,
)

logger = logging.getLogger("camp.web")

router = APIRouter(prefix="/api", tags=["admin"])

_BUSY_MESSAGE = "Database is currently busy. Please try again in a few seconds."


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class SessionResponse(BaseModel):
    authenticated: bool


@router.get("/admin/session", response_model=SessionResponse)
async def get_session(request: Request):
    """Whether the caller holds a valid admin session. Never errors."""
    return SessionResponse(authenticated=is_admin_authenticated(request))


@router.post("/admin/login")
async def login(body: LoginRequest, response: Response):
    """Check the admin credentials and set the session cookie."""
    if not credentials_match(body.username.strip(), body.password):
        logger.warning("Failed admin login attempt")
        raise HTTPException(status_code=401, detail="Invalid username or password.")
    set_session_cookie(response, issue_admin_token())
    return {"message": "Login successful."}


@router.post("/admin/logout")
async def logout(response: Response):
    clear_session_cookie(response)
    return {"message": "Logout successful."}


@router.get("/stats")
async def get_stats(admin: str = Depends(require_admin)):
    registrations = await registration_service.load_registrations()
    return {"stats": compute_stats(registrations).model_dump(by_alias=True)}


@router.get("/registrations")
async def list_registrations(admin: str = Depends(require_admin)):
    registrations = await registration_service.load_registrations()
    return {"registrations": [registration_to_dict(r) for r in registrations]}


@router.get("/admin/export.csv")
async def export_csv(admin: str = Depends(require_admin)):
    """All registrations (terminal statuses included) as a spreadsheet-friendly CSV download."""
    registrations = await registration_service.load_registrations()
    export_date = datetime.now(timezone.utc).date().isoformat()
    return StreamingResponse(
        iter_csv_lines(registrations),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="registrations-{export_date}.csv"',
            "Cache-Control": "no-store",
        },
    )


async def _registration_id_from(request: Request) -> str:
    body = await read_json_body(request)
    registration_id = str(body.get("registrationId") or "").strip() if isinstance(body, dict) else ""
    if not registration_id:
        raise HTTPException(400, "registrationId is required.")
    return registration_id


@router.post("/admin/registrations/mark-deleted")
async def mark_deleted(request: Request, admin: str = Depends(require_admin)):
    """Soft-delete a registration. The row stays for audit and statistics."""
    registration_id = await _registration_id_from(request)
    try:
        changed = await registration_service.mark_deleted(registration_id)
    except StatusTransitionError as e:
        raise HTTPException(409, str(e))
    except RetryExhaustedError:
        raise HTTPException(503, _BUSY_MESSAGE)
    if changed == 0:
        raise HTTPException(404, "Registration not found.")
    return {"message": "Registration status was set to DELETED.", "registrationId": registration_id}


@router.post("/admin/registrations/anonymize")
async def anonymize(request: Request, admin: str = Depends(require_admin)):
    """Irreversibly clear the personal data of a registration."""
    registration_id = await _registration_id_from(request)
    try:
        changed = await registration_service.anonymize(registration_id)
    except RetryExhaustedError:
        raise HTTPException(503, _BUSY_MESSAGE)
    if changed == 0:
        raise HTTPException(404, "Registration not found.")
    return {"message": "Registration was anonymized.", "registrationId": registration_id}
