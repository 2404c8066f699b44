"""
Directory view: the public map of branches and member pins.

Reads never raise. A failed read leaves an empty list behind and puts a
message in ``error`` for the inline banner.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog

from membermap_shared.schemas.common import DisclosureLevel, MarkerKind
from membermap_shared.schemas.directory import (
    BranchListResponse,
    BranchResponse,
    DirectoryMember,
    DirectoryMemberListResponse,
    MapMarker,
    build_markers,
)

from .config import ClientConfig
from .errors import AuthenticationRequired, GatewayError
from .gateway import DataGateway

log = structlog.get_logger()


class DirectoryView:
    """View state for the map screen."""

    def __init__(self, gateway: DataGateway, config: ClientConfig):
        self.gateway = gateway
        self.session = gateway.session
        self.config = config.views

        self.branches: list[BranchResponse] = []
        self.members: list[DirectoryMember] = []
        self.served_level: Optional[DisclosureLevel] = None
        self.error: Optional[str] = None
        self.loading = False

        self.center: tuple[float, float] = self.config.map_center
        self.zoom: int = self.config.map_zoom
        self.selected: Optional[MapMarker] = None
        self._level: Optional[DisclosureLevel] = None

    @property
    def level(self) -> DisclosureLevel:
        """Requested level; the server caps it at the viewer's clearance."""
        if not self.session.is_authenticated:
            return DisclosureLevel.ANONYMOUS
        return self._level or DisclosureLevel.FULL

    @property
    def markers(self) -> list[MapMarker]:
        return build_markers(self.branches, self.members)

    async def load(self) -> None:
        """Single load pass: branches, then members when signed in at level 2 or above."""
        self.loading = True
        self.error = None
        try:
            await self.load_branches()
            if self.session.is_authenticated and self.level >= DisclosureLevel.MEMBER:
                await self.load_members(self.level)
            else:
                self.members = []
        finally:
            self.loading = False

    async def load_branches(self) -> list[BranchResponse]:
        try:
            body = BranchListResponse.model_validate(
                await self.gateway.get("directory/branches")
            )
        except GatewayError as exc:
            log.error("directory.branches_failed", error=exc.message, status=exc.status)
            self.branches = []
            self.error = exc.message
            return self.branches
        self.branches = body.data
        if body.error:
            self.error = body.error
        return self.branches

    async def load_members(self, level: int) -> list[DirectoryMember]:
        try:
            body = DirectoryMemberListResponse.model_validate(
                await self.gateway.get("directory/members", params={"level": int(level)})
            )
        except GatewayError as exc:
            log.error(
                "directory.members_failed",
                level=int(level),
                error=exc.message,
                status=exc.status,
            )
            if isinstance(exc, AuthenticationRequired):
                self.session.expire()
            self.members = []
            self.error = exc.message
            return self.members
        self.members = body.data
        self.served_level = body.level
        if body.error:
            self.error = body.error
        return self.members

    async def set_level(self, level: int) -> None:
        """Pick the detail level (2 or 3) for a signed-in viewer and reload pins."""
        if not self.session.is_authenticated:
            log.debug("directory.level_ignored", level=int(level))
            return
        self._level = DisclosureLevel(min(max(int(level), DisclosureLevel.MEMBER), DisclosureLevel.FULL))
        self.error = None
        await self.load_members(self._level)

    def select(self, kind: MarkerKind, marker_id: uuid.UUID) -> bool:
        """Recentre and zoom on a marker. Returns ``False`` if it is not on the map."""
        kind = MarkerKind(kind)
        for marker in self.markers:
            if marker.kind == kind and marker.id == marker_id:
                self.selected = marker
                self.center = (marker.latitude, marker.longitude)
                self.zoom = self.config.map_focus_zoom
                return True
        return False

    def reset_view(self) -> None:
        self.selected = None
        self.center = self.config.map_center
        self.zoom = self.config.map_zoom
