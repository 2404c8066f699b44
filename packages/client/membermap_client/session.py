"""
Session provider: the explicit identity context every view is built with.

Holds the HTTP client (and with it the ``map_session`` / ``map_csrf``
cookies the server sets), plus the signed-in user as last reported by
``/auth/me``.
"""

from __future__ import annotations

from typing import Optional

import httpx
import structlog

from membermap_shared.schemas.common import DisclosureLevel, Role
from membermap_shared.schemas.users import CurrentUserResponse

from .config import ClientConfig
from .errors import AuthenticationRequired, GatewayError, SignUpRejected, raise_for_error

log = structlog.get_logger()

CSRF_COOKIE = "map_csrf"
CSRF_HEADER = "X-CSRF-Token"
MIN_PASSWORD_LENGTH = 6


class Session:
    """Identity context for one signed-in (or anonymous) user."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client
        self.current_user: Optional[CurrentUserResponse] = None

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "Session":
        client = httpx.AsyncClient(
            base_url=config.server.base_url,
            timeout=httpx.Timeout(config.server.request_timeout_seconds),
            verify=config.server.verify_tls,
            transport=transport,
        )
        return cls(client)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    @property
    def csrf_token(self) -> Optional[str]:
        return self._client.cookies.get(CSRF_COOKIE)

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    @property
    def is_admin(self) -> bool:
        return self.current_user is not None and self.current_user.role == Role.ADMIN

    @property
    def clearance(self) -> DisclosureLevel:
        if self.current_user is None:
            return DisclosureLevel.ANONYMOUS
        return self.current_user.clearance

    def csrf_headers(self) -> dict[str, str]:
        token = self.csrf_token
        return {CSRF_HEADER: token} if token else {}

    async def send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            log.error("session.request_failed", url=url, error=exc.__class__.__name__)
            raise GatewayError(f"Could not reach the server: {exc.__class__.__name__}") from exc
        raise_for_error(response)
        return response

    # --- Identity ---

    async def sign_in(self, email: str, password: str) -> CurrentUserResponse:
        await self.send("POST", "/auth/login", json={"email": email, "password": password})
        user = await self.refresh_current_user()
        log.info("session.signed_in", user_id=str(user.id) if user else None)
        return user

    async def sign_up(
        self, email: str, password: str, confirm_password: str
    ) -> CurrentUserResponse:
        if password != confirm_password:
            raise SignUpRejected("Passwords do not match")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise SignUpRejected(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        await self.send("POST", "/auth/register", json={"email": email, "password": password})
        user = await self.refresh_current_user()
        log.info("session.signed_up", user_id=str(user.id) if user else None)
        return user

    async def sign_out(self) -> None:
        try:
            await self.send("POST", "/auth/logout", headers=self.csrf_headers())
        finally:
            self._client.cookies.clear()
            self.current_user = None
        log.info("session.signed_out")

    def expire(self) -> None:
        """Forget a session the server no longer accepts; the viewer is anonymous again."""
        if self.current_user is not None:
            log.info("session.expired", user_id=str(self.current_user.id))
        self._client.cookies.clear()
        self.current_user = None

    async def refresh_current_user(self) -> Optional[CurrentUserResponse]:
        """Reload the current user; ``None`` when there is no valid session."""
        try:
            response = await self.send("GET", "/auth/me")
        except AuthenticationRequired:
            self.current_user = None
            return None
        self.current_user = CurrentUserResponse.model_validate(response.json())
        return self.current_user
