"""Application factory and top-level wiring for the community event map.

This module is the glue that brings together configuration, the JSON document
store, the geocoder, HTML templates, API routers and error handling. Read
``create_app`` top to bottom for a bird's-eye view of what pieces exist and
how they are connected.
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .core.config import AppSettings, get_settings
from .core.errors import (
    AppError,
    app_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from .core.jinja import build_templates
from .core.ratelimit import KeyedSlidingWindowLimiter
from .db.store import JsonDocumentStore, default_document
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware
from .services.addresses import AddressService, Geocoder
from .services.auth import AuthGate
from .services.geocoding import NominatimGeocoder
from .services.rules import RulesService


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    geocoder: Optional[Geocoder] = None,
) -> FastAPI:
    settings = settings or get_settings()

    # ---------- State ----------
    # The store is read once here and handed to each service explicitly.
    store = JsonDocumentStore(
        settings.DATA_FILE,
        defaults=default_document(admin_password=settings.DEFAULT_ADMIN_PASSWORD),
    )
    store.load()

    auth_gate = AuthGate(store, username=settings.ADMIN_USERNAME, bcrypt_rounds=settings.BCRYPT_ROUNDS)
    auth_gate.ensure_password_hashed()

    app = FastAPI(title=settings.SITE_TITLE)
    app.state.settings = settings
    app.state.store = store
    app.state.auth_gate = auth_gate
    app.state.address_service = AddressService(store, geocoder or NominatimGeocoder.from_settings(settings))
    app.state.rules_service = RulesService(store)
    app.state.templates = build_templates(settings)
    app.state.rate_limiters = {
        bucket: KeyedSlidingWindowLimiter(settings.RATE_LIMIT_ATTEMPTS, settings.RATE_LIMIT_WINDOW_SECONDS)
        for bucket in ("signin", "change-password")
    }

    # ---------- Middleware ----------
    # Added innermost first: sessions sit closest to the routes.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SESSION_SECRET,
        session_cookie=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_MAX_AGE,
        same_site="lax",
        https_only=settings.SESSION_HTTPS_ONLY,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # ---------- Routes ----------
    app.mount("/static", StaticFiles(directory=str(settings.static_dir)), name="static")

    from .routers import api_addresses, api_rules, auth_ui, ui

    app.include_router(api_addresses.router)
    app.include_router(api_rules.router)
    app.include_router(auth_ui.router)
    app.include_router(ui.router)

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, bool]:
        return {"ok": True}

    # ---------- Exception handling ----------
    # Every API failure leaves as {"success": false, "message": ...}; pages
    # that need a session redirect to /signin instead.
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    return app


__all__ = ["create_app"]
