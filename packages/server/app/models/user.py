"""User model: sign-in identity. Directory data lives on the linked member row."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from .base import UUIDMixin, timestamp_field


class User(UUIDMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: str = Field(unique=True, index=True, nullable=False)  # stored lower-cased
    password_hash: Optional[str] = Field(default=None)  # bcrypt
    created_at: datetime = timestamp_field()
