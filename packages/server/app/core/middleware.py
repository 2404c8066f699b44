"""
Security middleware: response hardening headers and CSRF protection.

The Content-Security-Policy is derived from the configured map tile server,
so switching ``MAP_TILE_URL`` to another provider keeps the map rendering.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.core.auth import CSRF_COOKIE, SESSION_COOKIE
from app.core.config import get_settings
from app.core.errors import error_body

log = structlog.get_logger()

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
CSRF_HEADER = "X-CSRF-Token"

# Leaflet and its CSS are served from these CDNs
MAP_ASSET_HOSTS = ("https://unpkg.com", "https://cdn.jsdelivr.net")


def tile_source(tile_url: str) -> str:
    """CSP source for a tile URL template, e.g. ``https://*.tile.openstreetmap.org``."""
    parts = urlsplit(tile_url)
    host = re.sub(r"\{[^}]*\}", "*", parts.netloc)
    return f"{parts.scheme}://{host}"


def build_security_headers(tile_url: str) -> dict[str, str]:
    assets = " ".join(MAP_ASSET_HOSTS)
    csp = "; ".join(
        [
            "default-src 'self'",
            f"script-src 'self' 'unsafe-inline' {assets}",
            f"style-src 'self' 'unsafe-inline' {assets}",
            f"img-src 'self' data: {tile_source(tile_url)} https://unpkg.com",
            "connect-src 'self'",
            "frame-ancestors 'none'",
        ]
    )
    return {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "0",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "camera=(), microphone=(), geolocation=(self)",
        "Content-Security-Policy": csp + ";",
        "Strict-Transport-Security": "max-age=63072000; includeSubDomains; preload",
    }


SECURITY_HEADERS = build_security_headers(get_settings().tile_url)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach ``SECURITY_HEADERS`` to every response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    Double-submit cookie check for cookie-authenticated writes.

    The ``map_csrf`` cookie must be echoed in the ``X-CSRF-Token`` header on
    every unsafe request that carries a ``map_session`` cookie. Requests
    without a session (sign-in, sign-up, anonymous reads) pass through.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method in SAFE_METHODS or SESSION_COOKIE not in request.cookies:
            return await call_next(request)

        cookie_token = request.cookies.get(CSRF_COOKIE)
        header_token = request.headers.get(CSRF_HEADER)
        if cookie_token and header_token and cookie_token == header_token:
            return await call_next(request)

        log.warning(
            "csrf.rejected",
            path=request.url.path,
            method=request.method,
            header_present=header_token is not None,
        )
        return JSONResponse(
            status_code=403,
            content=error_body(403, "Invalid or missing CSRF token.", code="CSRF_VALIDATION_FAILED"),
        )
