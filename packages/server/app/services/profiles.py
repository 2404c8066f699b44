"""
Profile self-service: a member reads and edits their own row.
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Viewer
from app.core.database import elevated_row_context
from app.models.member import Member
from app.services import branches as branch_service
from app.services import members as member_service
from membermap_shared.schemas.common import UpdatedBy
from membermap_shared.schemas.profiles import (
    EDITABLE_PROFILE_FIELDS,
    ProfileResponse,
    ProfileUpdateRequest,
)

log = structlog.get_logger()

NO_PROFILE_MESSAGE = "No profile is linked to this account"


def to_profile_response(member: Member) -> ProfileResponse:
    return ProfileResponse.model_validate(member, from_attributes=True)


async def load_own_profile(
    viewer: Viewer, session: AsyncSession
) -> Optional[Member]:
    """The caller's member row; ``None`` is a valid "no profile" state."""
    return await member_service.get_member_by_user(session, viewer.user_id)


async def save_profile(
    viewer: Viewer, req: ProfileUpdateRequest, session: AsyncSession
) -> Member:
    """Write the editable fields of the caller's own row."""
    member = await member_service.get_member_by_user(session, viewer.user_id)
    if member is None:
        raise HTTPException(status_code=404, detail=NO_PROFILE_MESSAGE)

    patch = req.model_dump(exclude_unset=True)
    # The request schema already forbids other keys; this keeps the service
    # safe when called with a schema built elsewhere.
    fields = {k: v for k, v in patch.items() if k in EDITABLE_PROFILE_FIELDS}
    if "display_name" in fields and fields["display_name"] is None:
        raise HTTPException(status_code=422, detail="display_name cannot be empty")
    fields["last_updated_by"] = UpdatedBy.SELF.value
    was_visible = member.visible

    member = await member_service.update_member_fields(session, member, fields)
    if member.visible != was_visible and member.branch_id is not None:
        # branches are admin-written; the count is derived, not a member edit
        async with elevated_row_context(session):
            await branch_service.recount_members(session, member.branch_id)
    log.info(
        "profile.saved",
        member_id=str(member.id),
        user_id=str(viewer.user_id),
        fields=sorted(k for k in fields if k != "last_updated_by"),
    )
    return member


async def claim_profile(viewer: Viewer, session: AsyncSession) -> Member:
    """Link the caller to the admin-entered row carrying their email."""
    existing = await member_service.get_member_by_user(session, viewer.user_id)
    if existing is not None:
        raise HTTPException(status_code=409, detail="A profile is already linked to this account")

    member = await member_service.find_unclaimed_by_email(session, viewer.email)
    if member is None:
        raise HTTPException(
            status_code=404, detail="No unclaimed profile matches this account"
        )

    member = await member_service.update_member_fields(
        session,
        member,
        {"user_id": viewer.user_id, "last_updated_by": UpdatedBy.SELF.value},
    )
    log.info("profile.claimed", member_id=str(member.id), user_id=str(viewer.user_id))
    return member
