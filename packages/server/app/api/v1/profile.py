"""
Profile self-service API endpoints.

GET   /api/v1/profile        The caller's own member row, or "no profile"
PATCH /api/v1/profile        Update the editable fields of that row
POST  /api/v1/profile/claim  Link an admin-entered row to the caller
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Viewer, get_viewer
from app.core.database import get_session
from app.services import profiles as profile_service
from membermap_shared.schemas.profiles import (
    ProfileEnvelope,
    ProfileUpdateRequest,
)

router = APIRouter()


@router.get("", response_model=ProfileEnvelope)
async def get_profile(
    viewer: Viewer = Depends(get_viewer),
    session: AsyncSession = Depends(get_session),
):
    """Load the caller's profile. A missing profile is reported, not raised."""
    member = await profile_service.load_own_profile(viewer, session)
    if member is None:
        return ProfileEnvelope(profile=None, message=profile_service.NO_PROFILE_MESSAGE)
    return ProfileEnvelope(profile=profile_service.to_profile_response(member))


@router.patch("", response_model=ProfileEnvelope)
async def update_profile(
    body: ProfileUpdateRequest,
    viewer: Viewer = Depends(get_viewer),
    session: AsyncSession = Depends(get_session),
):
    """Save the caller's edits. Admin-only fields are rejected by the schema."""
    member = await profile_service.save_profile(viewer, body, session)
    return ProfileEnvelope(
        profile=profile_service.to_profile_response(member),
        message="Profile updated",
    )


@router.post("/claim", response_model=ProfileEnvelope)
async def claim_profile(
    viewer: Viewer = Depends(get_viewer),
    session: AsyncSession = Depends(get_session),
):
    """Claim the unowned member row whose claim email matches the caller."""
    member = await profile_service.claim_profile(viewer, session)
    return ProfileEnvelope(
        profile=profile_service.to_profile_response(member),
        message="Profile claimed",
    )
