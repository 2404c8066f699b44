"""
Branch data access: reads over ``branches`` and their derived member counts.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.branch import Branch
from app.models.member import Member

log = structlog.get_logger()


async def list_public_branches(session: AsyncSession) -> list[Branch]:
    """Branches published on the anonymous map."""
    result = await session.execute(
        select(Branch)
        .where(Branch.public.is_(True))
        .order_by(Branch.region, Branch.name)
    )
    return list(result.scalars().all())


async def list_all_branches(session: AsyncSession) -> list[Branch]:
    """Every branch, published or not, ordered by region."""
    result = await session.execute(
        select(Branch).order_by(Branch.region, Branch.name)
    )
    return list(result.scalars().all())


async def count_branches(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(Branch))
    return int(result.scalar_one())


async def recount_members(
    session: AsyncSession, branch_id: Optional[uuid.UUID] = None
) -> int:
    """Recompute ``member_count`` from visible members, for one branch or all.

    Returns the number of branches whose count changed.
    """
    stmt = (
        select(Member.branch_id, func.count(Member.id))
        .where(Member.branch_id.is_not(None), Member.visible.is_(True))
        .group_by(Member.branch_id)
    )
    if branch_id is not None:
        stmt = stmt.where(Member.branch_id == branch_id)
    result = await session.execute(stmt)
    counts = {bid: count for bid, count in result.all()}

    if branch_id is None:
        branches = await list_all_branches(session)
    else:
        branch = await session.get(Branch, branch_id)
        branches = [branch] if branch is not None else []

    changed = 0
    for branch in branches:
        count = int(counts.get(branch.id, 0))
        if branch.member_count != count:
            branch.member_count = count
            session.add(branch)
            changed += 1
    await session.flush()
    log.info(
        "branch.member_counts_refreshed",
        branch_id=str(branch_id) if branch_id else None,
        changed=changed,
    )
    return changed
