"""
Data access gateway: JSON reads and writes against ``/api/v1``.

Every call goes through the session's HTTP client, so the session cookie
travels with it; unsafe methods also carry the CSRF header. Failures are
raised as ``GatewayError`` subclasses and never retried.
"""

from __future__ import annotations

from typing import Any

from .session import Session

API_PREFIX = "/api/v1"


class DataGateway:
    """Thin request layer shared by the screen view models."""

    def __init__(self, session: Session, prefix: str = API_PREFIX):
        self.session = session
        self._prefix = prefix.rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self._prefix}/{path.lstrip('/')}" if path else self._prefix

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        response = await self.session.send("GET", self._url(path), params=params)
        return response.json()

    async def patch(self, path: str, data: dict[str, Any]) -> Any:
        response = await self.session.send(
            "PATCH", self._url(path), json=data, headers=self.session.csrf_headers()
        )
        return response.json()

    async def post(self, path: str, data: dict[str, Any] | None = None) -> Any:
        response = await self.session.send(
            "POST", self._url(path), json=data, headers=self.session.csrf_headers()
        )
        return response.json()
