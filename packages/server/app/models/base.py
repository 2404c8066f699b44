"""Shared columns for the directory tables."""

from datetime import datetime, timezone
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def timestamp_field(*, touch_on_update: bool = False):
    """A timezone-aware timestamp column defaulting to now, app- and server-side."""
    column_kwargs = {"server_default": sa.func.now()}
    if touch_on_update:
        column_kwargs["onupdate"] = utcnow
    return Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs=column_kwargs,
        sa_type=sa.DateTime(timezone=True),
    )


class UUIDMixin(SQLModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)


class TimestampMixin(SQLModel):
    # members.updated_at orders the admin table
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field(touch_on_update=True)
