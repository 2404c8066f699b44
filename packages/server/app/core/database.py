"""
Database connection, session management, and row-level security context.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from app.core.config import get_settings

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
)

async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db():
    """Create all tables (development only; use migrations in production)."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session_context():
    """Context manager for use outside of FastAPI request lifecycle."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


_ROW_CONTEXT_KEY = "row_context"


def _supports_row_security(session: AsyncSession) -> bool:
    bind = session.bind
    return bind is not None and bind.dialect.name == "postgresql"


async def _publish(session: AsyncSession, values: dict[str, str]) -> None:
    if not _supports_row_security(session):
        return
    for key, value in values.items():
        await session.execute(
            text("SELECT set_config(:key, :value, true)"),
            {"key": key, "value": value},
        )


async def set_row_context(
    session: AsyncSession,
    *,
    user_id: Optional[uuid.UUID] = None,
    email: Optional[str] = None,
    is_admin: Optional[bool] = None,
    disclosure_level: Optional[int] = None,
) -> None:
    """Publish the viewer to the RLS policies for the current transaction.

    Only the given keys are written. The values are also remembered on the
    session so ``restore_row_context`` can re-publish them after a rollback.
    Nothing is executed on engines without row security.
    """
    values = {
        "app.current_user_id": str(user_id) if user_id else None,
        "app.current_email": email.lower() if email else None,
        "app.is_admin": None if is_admin is None else ("true" if is_admin else "false"),
        "app.disclosure_level": None if disclosure_level is None else str(int(disclosure_level)),
    }
    values = {k: v for k, v in values.items() if v is not None}
    session.info.setdefault(_ROW_CONTEXT_KEY, {}).update(values)
    await _publish(session, values)


async def restore_row_context(session: AsyncSession) -> None:
    """Re-publish the remembered context; ``set_config(..., true)`` dies with a rollback."""
    await _publish(session, dict(session.info.get(_ROW_CONTEXT_KEY, {})))


@asynccontextmanager
async def elevated_row_context(session: AsyncSession):
    """Run a system write (derived counters) with the admin flag, then put the caller's back."""
    previous = session.info.get(_ROW_CONTEXT_KEY, {}).get("app.is_admin", "false")
    await set_row_context(session, is_admin=True)
    try:
        yield
    finally:
        await set_row_context(session, is_admin=previous == "true")


async def ping_database(session: AsyncSession) -> bool:
    await session.execute(text("SELECT 1"))
    return True
