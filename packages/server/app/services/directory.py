"""
Directory service: the public map's reads.

A failed read never reaches the user as an exception: it is logged, the
result set is replaced by an empty list, and a message is returned
alongside for the inline banner.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import restore_row_context
from app.core.visibility import build_member_query_filter, project_member
from app.models.branch import Branch
from app.services import branches as branch_service
from app.services import members as member_service
from membermap_shared.schemas.common import DisclosureLevel, MarkerKind
from membermap_shared.schemas.directory import (
    BranchResponse,
    DirectoryMember,
    MapView,
    build_markers,
)

log = structlog.get_logger()
settings = get_settings()

BRANCHES_UNAVAILABLE = "Branches could not be loaded"
MEMBERS_UNAVAILABLE = "Members could not be loaded"


async def _recover(session: AsyncSession) -> None:
    """Roll back the failed read and re-publish the row context for the next one."""
    await session.rollback()
    try:
        await restore_row_context(session)
    except SQLAlchemyError as exc:
        log.warning("directory.row_context_lost", error=exc.__class__.__name__)


def _branch_response(branch: Branch) -> BranchResponse:
    return BranchResponse(
        id=branch.id,
        name=branch.name,
        region=branch.region,
        city=branch.city,
        latitude=branch.latitude,
        longitude=branch.longitude,
        member_count=branch.member_count,
    )


async def load_branches(
    session: AsyncSession,
) -> tuple[list[BranchResponse], Optional[str]]:
    """Public branches, or ``([], message)`` if the read failed."""
    try:
        rows = await branch_service.list_public_branches(session)
    except SQLAlchemyError as exc:
        log.error("directory.branches_failed", error=exc.__class__.__name__)
        await _recover(session)
        return [], BRANCHES_UNAVAILABLE
    return [_branch_response(b) for b in rows], None


def member_listing_enabled(level: DisclosureLevel) -> bool:
    """Members are listed from level 2 up; level 1 only when anonymous pins are on."""
    if level >= DisclosureLevel.MEMBER:
        return True
    return settings.anonymous_member_pins


async def load_members(
    session: AsyncSession, level: DisclosureLevel
) -> tuple[list[DirectoryMember], Optional[str]]:
    """Members allowed at ``level``, projected to that level's fields."""
    if not member_listing_enabled(level):
        return [], None
    member_filter = build_member_query_filter(level)
    try:
        rows = await member_service.list_directory_members(session, member_filter)
    except SQLAlchemyError as exc:
        log.error(
            "directory.members_failed",
            level=int(level),
            error=exc.__class__.__name__,
        )
        await _recover(session)
        return [], MEMBERS_UNAVAILABLE
    return [DirectoryMember(**project_member(m, level)) for m in rows], None


def build_map_view(
    level: DisclosureLevel,
    branches: list[BranchResponse],
    members: list[DirectoryMember],
    *,
    focus_kind: Optional[MarkerKind] = None,
    focus_id: Optional[uuid.UUID] = None,
    errors: Optional[list[str]] = None,
) -> MapView:
    """Assemble the map screen; a known focus marker recentres and zooms in."""
    markers = build_markers(branches, members)
    view = MapView(
        center=(settings.map_center_lat, settings.map_center_lng),
        zoom=settings.map_zoom,
        tile_url=settings.tile_url,
        attribution=settings.tile_attribution,
        level=level,
        markers=markers,
        errors=errors or [],
    )
    if focus_kind is not None and focus_id is not None:
        return focus_map(view, focus_kind, focus_id)
    return view


def focus_map(view: MapView, kind: MarkerKind, marker_id: uuid.UUID) -> MapView:
    for marker in view.markers:
        if marker.kind == kind and marker.id == marker_id:
            return view.model_copy(
                update={
                    "center": (marker.latitude, marker.longitude),
                    "zoom": settings.map_focus_zoom,
                    "selected": marker,
                }
            )
    return view
