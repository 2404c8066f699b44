"""Errors raised by the session and the data gateway.

The server renders every failure as ``{"error": {"code", "message", "status"}}``;
``raise_for_error`` turns that envelope into one of the classes below.
"""

from __future__ import annotations

from typing import Optional

import httpx


class GatewayError(Exception):
    """A request failed. ``status`` is ``None`` when the server was never reached."""

    def __init__(self, message: str, *, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code


class AuthenticationRequired(GatewayError):
    """401: no session, or the session expired."""


class AccessDenied(GatewayError):
    """403: signed in, but not allowed."""


class NotFound(GatewayError):
    """404"""


class SignUpRejected(GatewayError):
    """Sign-up input refused before any request was sent."""


_BY_STATUS = {
    401: AuthenticationRequired,
    403: AccessDenied,
    404: NotFound,
}


def error_from_response(response: httpx.Response) -> GatewayError:
    status = response.status_code
    code = None
    message = response.reason_phrase or f"HTTP {status}"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        code = body["error"].get("code")
        message = body["error"].get("message") or message
    cls = _BY_STATUS.get(status, GatewayError)
    return cls(message, status=status, code=code)


def raise_for_error(response: httpx.Response) -> None:
    if response.is_success:
        return
    raise error_from_response(response)
