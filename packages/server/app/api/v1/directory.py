"""
Public directory API endpoints.

GET /api/v1/directory/branches  Published branches
GET /api/v1/directory/members   Member pins at the viewer's disclosure level
GET /api/v1/directory/map       Map view: tiles, markers, centre and zoom

None of these require a session. An anonymous caller is always served at
level 1, whatever ``level`` it asks for.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Viewer, get_optional_viewer
from app.core.database import get_session, set_row_context
from app.core.visibility import resolve_disclosure_level
from app.services import directory as directory_service
from membermap_shared.schemas.common import DisclosureLevel, MarkerKind
from membermap_shared.schemas.directory import (
    BranchListResponse,
    DirectoryMemberListResponse,
    MapView,
)

router = APIRouter()


async def _served_level(
    viewer: Optional[Viewer], requested: Optional[int], session: AsyncSession
) -> DisclosureLevel:
    level = resolve_disclosure_level(viewer, requested)
    await set_row_context(session, disclosure_level=level)
    return level


@router.get("/branches", response_model=BranchListResponse)
async def list_branches(
    session: AsyncSession = Depends(get_session),
):
    """Branches published on the public map."""
    data, error = await directory_service.load_branches(session)
    return BranchListResponse(data=data, error=error)


@router.get(
    "/members",
    response_model=DirectoryMemberListResponse,
    response_model_exclude_none=True,
)
async def list_members(
    level: Optional[int] = Query(default=None, ge=1, le=3),
    viewer: Optional[Viewer] = Depends(get_optional_viewer),
    session: AsyncSession = Depends(get_session),
):
    """Visible members at the served level, with only that level's fields."""
    served = await _served_level(viewer, level, session)
    data, error = await directory_service.load_members(session, served)
    return DirectoryMemberListResponse(data=data, level=served, error=error)


@router.get("/map", response_model=MapView)
async def map_view(
    level: Optional[int] = Query(default=None, ge=1, le=3),
    focus_kind: Optional[MarkerKind] = None,
    focus_id: Optional[uuid.UUID] = None,
    viewer: Optional[Viewer] = Depends(get_optional_viewer),
    session: AsyncSession = Depends(get_session),
):
    """The whole map screen; ``focus_kind``/``focus_id`` recentre on one marker."""
    served = await _served_level(viewer, level, session)
    branches, branch_error = await directory_service.load_branches(session)
    members, member_error = await directory_service.load_members(session, served)
    return directory_service.build_map_view(
        served,
        branches,
        members,
        focus_kind=focus_kind,
        focus_id=focus_id,
        errors=[e for e in (branch_error, member_error) if e],
    )
