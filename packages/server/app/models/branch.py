"""Branch model: a regional unit shown on the map."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Branch(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "branches"

    name: str = Field(nullable=False, index=True)
    region: str = Field(nullable=False, index=True)
    city: Optional[str] = None
    latitude: float = Field(nullable=False)
    longitude: float = Field(nullable=False)
    member_count: int = Field(default=0, nullable=False)  # derived, see services.branches
    public: bool = Field(default=True, nullable=False)
