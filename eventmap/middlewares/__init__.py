"""Request-level plumbing installed by ``create_app``: correlation ids and browser security headers."""

from __future__ import annotations

from .request_id import QUIET_PREFIXES, RequestIdMiddleware, principal_ctx_var, request_id_ctx_var
from .security_headers import CONTENT_SECURITY_POLICY, SecurityHeadersMiddleware

__all__ = [
    "CONTENT_SECURITY_POLICY",
    "QUIET_PREFIXES",
    "RequestIdMiddleware",
    "SecurityHeadersMiddleware",
    "principal_ctx_var",
    "request_id_ctx_var",
]
