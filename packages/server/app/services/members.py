"""
Member data access: filtered reads and single-row updates over ``members``.

Directory reads always go through a ``MemberQueryFilter``; only
``list_all_members`` (admin console) reads without one.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional

import structlog
from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.visibility import MemberQueryFilter
from app.models.member import Member

log = structlog.get_logger()


async def list_directory_members(
    session: AsyncSession, member_filter: MemberQueryFilter
) -> list[Member]:
    stmt = member_filter.apply(select(Member)).order_by(Member.display_name)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_member(session: AsyncSession, member_id: uuid.UUID) -> Member:
    result = await session.execute(select(Member).where(Member.id == member_id))
    member = result.scalar_one_or_none()
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


async def get_member_by_user(
    session: AsyncSession, user_id: uuid.UUID
) -> Optional[Member]:
    result = await session.execute(select(Member).where(Member.user_id == user_id))
    return result.scalar_one_or_none()


async def find_unclaimed_by_email(
    session: AsyncSession, email: str
) -> Optional[Member]:
    result = await session.execute(
        select(Member).where(
            Member.user_id.is_(None),
            func.lower(Member.claim_email) == email.lower(),
        )
    )
    rows = result.scalars().all()
    if len(rows) > 1:
        raise HTTPException(
            status_code=409,
            detail="More than one profile matches this account; contact an administrator",
        )
    return rows[0] if rows else None


async def list_all_members(
    session: AsyncSession, *, offset: int = 0, limit: Optional[int] = None
) -> list[Member]:
    """Unfiltered read, most recently updated first."""
    stmt = select(Member).order_by(Member.updated_at.desc(), Member.id).offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_members(session: AsyncSession, *conditions: Any) -> int:
    stmt = select(func.count()).select_from(Member)
    if conditions:
        stmt = stmt.where(*conditions)
    result = await session.execute(stmt)
    return int(result.scalar_one())


async def update_member_fields(
    session: AsyncSession, member: Member, fields: dict[str, Any]
) -> Member:
    """Apply a field patch to one row and flush it."""
    for key, value in fields.items():
        setattr(member, key, value)
    session.add(member)
    await session.flush()
    await session.refresh(member)
    return member
