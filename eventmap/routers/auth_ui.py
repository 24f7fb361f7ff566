"""Sign-in, sign-out and password change for the single admin account."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from ..core.errors import AuthenticationFailed, PersistenceError
from ..core.jinja import get_templates
from ..deps.auth import end_session, get_auth_gate, has_active_session, require_session, start_session
from ..deps.ratelimit import rate_limited
from ..schemas.address import ApiMessage
from ..schemas.auth import PasswordChangeRequest
from ..services.auth import AuthGate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

ADMIN_PAGE = "/admin"


@router.get("/signin", response_class=HTMLResponse)
def signin_page(request: Request):
    if has_active_session(request):
        return RedirectResponse(url=ADMIN_PAGE, status_code=status.HTTP_302_FOUND)
    return get_templates(request).TemplateResponse(request, "signin.html", {"error": ""})


@router.post("/signin", response_class=HTMLResponse, dependencies=[Depends(rate_limited("signin"))])
def signin_submit(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    gate: AuthGate = Depends(get_auth_gate),
):
    try:
        gate.sign_in(username, password)
    except AuthenticationFailed:
        return get_templates(request).TemplateResponse(
            request,
            "signin.html",
            {"error": "Authentication failed."},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    start_session(request)
    return RedirectResponse(url=ADMIN_PAGE, status_code=status.HTTP_303_SEE_OTHER)


@router.post("/api/signout", response_model=ApiMessage)
def signout(request: Request):
    try:
        end_session(request)
    except Exception as exc:
        logger.exception("Sign out failed")
        raise PersistenceError("Could not sign out.") from exc
    return ApiMessage(message="Signed out successfully.")


@router.post(
    "/api/change-password",
    response_model=ApiMessage,
    dependencies=[Depends(require_session), Depends(rate_limited("change-password"))],
)
def change_password(payload: PasswordChangeRequest, gate: AuthGate = Depends(get_auth_gate)):
    gate.change_password(payload.current_password, payload.new_password)
    return ApiMessage(message="Password updated successfully.")
