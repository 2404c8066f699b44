"""
Admin console: dashboard tiles, the full member table and branch cards.

Nothing here patches local state ahead of the server: after a write the
whole console is reloaded.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog

from membermap_shared.schemas.admin import (
    AdminBranchCard,
    AdminBranchList,
    AdminMemberPage,
    AdminMemberRow,
    AdminMetrics,
)
from membermap_shared.schemas.common import Pagination

from .config import ClientConfig
from .errors import AccessDenied, AuthenticationRequired, GatewayError
from .gateway import DataGateway

log = structlog.get_logger()

HOME_PATH = "/"
LOGIN_PATH = "/login"


class AdminConsole:
    """View state for the admin screen."""

    def __init__(self, gateway: DataGateway, config: ClientConfig):
        self.gateway = gateway
        self.session = gateway.session
        self.per_page = config.views.admin_page_size

        self.metrics: Optional[AdminMetrics] = None
        self.members: list[AdminMemberRow] = []
        self.branches: list[AdminBranchCard] = []
        self.pagination: Optional[Pagination] = None
        self.page = 1
        self.error: Optional[str] = None
        self.loading = False
        self.redirect_to: Optional[str] = None

    async def open(self) -> bool:
        """Confirm the admin role, then load. Non-admins are sent home."""
        try:
            user = await self.session.refresh_current_user()
        except GatewayError as exc:
            self.error = exc.message
            return False
        if user is None:
            self.redirect_to = LOGIN_PATH
            return False
        if not self.session.is_admin:
            log.warning("authz.denied", user_id=str(user.id), screen="admin")
            self.redirect_to = HOME_PATH
            return False
        await self.load()
        return self.error is None

    def _fail(self, exc: GatewayError, event: str) -> None:
        if isinstance(exc, AuthenticationRequired):
            self.redirect_to = LOGIN_PATH
        elif isinstance(exc, AccessDenied):
            self.redirect_to = HOME_PATH
        self.error = exc.message
        log.error(event, error=exc.message, status=exc.status)

    async def load(self) -> None:
        self.loading = True
        self.error = None
        try:
            self.metrics = AdminMetrics.model_validate(await self.gateway.get("admin/metrics"))
            page = AdminMemberPage.model_validate(
                await self.gateway.get(
                    "admin/members", params={"page": self.page, "per_page": self.per_page}
                )
            )
            self.members = page.data
            self.pagination = page.pagination
            self.branches = AdminBranchList.model_validate(
                await self.gateway.get("admin/branches")
            ).data
        except GatewayError as exc:
            self._fail(exc, "admin.load_failed")
        finally:
            self.loading = False

    async def toggle_visibility(self, member_id: uuid.UUID) -> bool:
        try:
            await self.gateway.post(f"admin/members/{member_id}/toggle-visibility")
        except GatewayError as exc:
            self._fail(exc, "admin.toggle_failed")
            return False
        log.info("admin.visibility_toggled", member_id=str(member_id))
        await self.load()
        return self.error is None

    async def next_page(self) -> None:
        """Advance one page; a no-op until a page has loaded or on the last page."""
        if self.pagination is None or self.page >= self.pagination.total_pages:
            return
        self.page += 1
        await self.load()

    async def previous_page(self) -> None:
        if self.page <= 1:
            return
        self.page -= 1
        await self.load()
