from __future__ import annotations

import logging
import time

from fastapi import Request

from ..core.errors import SessionRequired
from ..middlewares import principal_ctx_var
from ..services.addresses import AddressService
from ..services.auth import AuthGate
from ..services.rules import RulesService

logger = logging.getLogger(__name__)

SESSION_FLAG = "user"
SESSION_STARTED = "signed_in_at"


def _now() -> float:
    return time.time()


def _session_max_age(request: Request) -> int:
    return request.app.state.settings.SESSION_MAX_AGE


def start_session(request: Request) -> None:
    request.session.clear()
    request.session[SESSION_FLAG] = True
    request.session[SESSION_STARTED] = int(_now())


def end_session(request: Request) -> None:
    request.session.clear()


def has_active_session(request: Request) -> bool:
    """A session is valid for ``SESSION_MAX_AGE`` seconds after sign-in.

    The cookie is re-signed on every response, so the sign-in timestamp is
    what bounds the session, not the cookie's own age.
    """

    session = request.session
    if not session.get(SESSION_FLAG):
        return False
    started = session.get(SESSION_STARTED)
    if not isinstance(started, (int, float)) or _now() - started >= _session_max_age(request):
        logger.info("Session expired.")
        session.clear()
        return False
    return True


async def require_session(request: Request) -> bool:
    """Gate for mutating endpoints and the admin page.

    API callers get a 401 envelope; browsers asking for a page are redirected
    to the sign-in form by the ``SessionRequired`` handler.
    """

    if not has_active_session(request):
        raise SessionRequired()
    principal_ctx_var.set("admin")
    request.state.principal = "admin"
    return True


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate


def get_address_service(request: Request) -> AddressService:
    return request.app.state.address_service


def get_rules_service(request: Request) -> RulesService:
    return request.app.state.rules_service
