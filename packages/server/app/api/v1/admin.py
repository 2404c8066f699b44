"""
Admin console API endpoints (admin role required on every route).

GET  /api/v1/admin/metrics                               Dashboard tiles
GET  /api/v1/admin/members                               All members, paginated
GET  /api/v1/admin/branches                              All branches
POST /api/v1/admin/members/{memberId}/toggle-visibility  Flip ``visible``
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Viewer, require_admin
from app.core.config import get_settings
from app.core.database import get_session
from app.services import admin as admin_service
from membermap_shared.schemas.admin import (
    AdminBranchList,
    AdminMemberPage,
    AdminMetrics,
    ToggleVisibilityResponse,
)

settings = get_settings()
router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/metrics", response_model=AdminMetrics)
async def get_metrics(
    session: AsyncSession = Depends(get_session),
):
    """Totals for the dashboard tiles."""
    return await admin_service.metrics(session)


@router.get("/members", response_model=AdminMemberPage)
async def list_members(
    page: int = Query(default=1, ge=1),
    per_page: Optional[int] = Query(default=None, ge=1),
    session: AsyncSession = Depends(get_session),
):
    """Every member, hidden ones included, most recently updated first."""
    size = min(per_page or settings.admin_page_size, settings.admin_max_page_size)
    return await admin_service.list_all_members(session, page=page, per_page=size)


@router.get("/branches", response_model=AdminBranchList)
async def list_branches(
    session: AsyncSession = Depends(get_session),
):
    """Every branch, ordered by region."""
    return AdminBranchList(data=await admin_service.list_all_branches(session))


@router.post(
    "/members/{memberId}/toggle-visibility",
    response_model=ToggleVisibilityResponse,
)
async def toggle_visibility(
    memberId: uuid.UUID,
    admin: Viewer = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Flip a member's ``visible`` flag. Clients reload their listing afterwards."""
    member = await admin_service.toggle_visibility(memberId, admin.user_id, session)
    return ToggleVisibilityResponse(member=admin_service.to_admin_row(member))
