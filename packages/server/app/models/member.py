"""Member model: one directory entry, optionally owned by a user."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Member(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "members"

    user_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="users.id", unique=True, index=True
    )  # NULL until claimed
    branch_id: Optional[uuid.UUID] = Field(default=None, foreign_key="branches.id", index=True)
    role: str = Field(default="member", nullable=False)  # member | admin

    display_name: str = Field(nullable=False)
    company_name: Optional[str] = None
    industry_1: Optional[str] = None
    industry_2: Optional[str] = None
    want_to_introduce: Optional[str] = None
    can_introduce: Optional[str] = None

    latitude: float = Field(nullable=False)
    longitude: float = Field(nullable=False)

    visible: bool = Field(default=False, nullable=False)
    general_public: bool = Field(default=False, nullable=False)
    public_level: int = Field(default=2, nullable=False)  # 1..3

    payment_status: str = Field(default="inactive", nullable=False)  # active | inactive
    last_updated_by: str = Field(default="self", nullable=False)  # self | admin
    claim_email: Optional[str] = Field(default=None, index=True)
