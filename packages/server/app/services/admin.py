"""
Admin console service: unfiltered listings, dashboard metrics, moderation.
"""

from __future__ import annotations

import math
import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.branch import Branch
from app.models.member import Member
from app.services import branches as branch_service
from app.services import members as member_service
from membermap_shared.schemas.admin import (
    AdminBranchCard,
    AdminMemberPage,
    AdminMemberRow,
    AdminMetrics,
)
from membermap_shared.schemas.common import Pagination, PaymentStatus, UpdatedBy

log = structlog.get_logger()


def to_admin_row(member: Member) -> AdminMemberRow:
    return AdminMemberRow.model_validate(member, from_attributes=True)


def to_branch_card(branch: Branch) -> AdminBranchCard:
    return AdminBranchCard.model_validate(branch, from_attributes=True)


async def list_all_members(
    session: AsyncSession, *, page: int, per_page: int
) -> AdminMemberPage:
    total = await member_service.count_members(session)
    rows = await member_service.list_all_members(
        session, offset=(page - 1) * per_page, limit=per_page
    )
    return AdminMemberPage(
        data=[to_admin_row(m) for m in rows],
        pagination=Pagination(
            page=page,
            per_page=per_page,
            total=total,
            total_pages=math.ceil(total / per_page) if total else 0,
        ),
    )


async def list_all_branches(session: AsyncSession) -> list[AdminBranchCard]:
    return [to_branch_card(b) for b in await branch_service.list_all_branches(session)]


async def metrics(session: AsyncSession) -> AdminMetrics:
    return AdminMetrics(
        total_members=await member_service.count_members(session),
        visible_members=await member_service.count_members(
            session, Member.visible.is_(True)
        ),
        active_members=await member_service.count_members(
            session, Member.payment_status == PaymentStatus.ACTIVE.value
        ),
        branch_count=await branch_service.count_branches(session),
    )


async def toggle_visibility(
    member_id: uuid.UUID, admin_user_id: uuid.UUID, session: AsyncSession
) -> Member:
    """Flip ``visible`` on one member and mark the row as admin-updated."""
    member = await member_service.get_member(session, member_id)
    previous = member.visible
    member = await member_service.update_member_fields(
        session,
        member,
        {"visible": not previous, "last_updated_by": UpdatedBy.ADMIN.value},
    )
    if member.branch_id is not None:
        await branch_service.recount_members(session, member.branch_id)
    log.info(
        "member.visibility_toggled",
        member_id=str(member_id),
        admin_user_id=str(admin_user_id),
        visible=member.visible,
    )
    return member
