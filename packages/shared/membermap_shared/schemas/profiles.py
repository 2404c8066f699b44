"""Profile self-service schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import PaymentStatus, UpdatedBy

# Fields a member may change on their own row. Everything else is admin-only.
EDITABLE_PROFILE_FIELDS = (
    "display_name",
    "company_name",
    "industry_1",
    "industry_2",
    "want_to_introduce",
    "can_introduce",
    "visible",
    "general_public",
)


class ProfileResponse(BaseModel):
    """The caller's own member row."""
    id: uuid.UUID
    branch_id: Optional[uuid.UUID] = None
    display_name: str
    company_name: Optional[str] = None
    industry_1: Optional[str] = None
    industry_2: Optional[str] = None
    want_to_introduce: Optional[str] = None
    can_introduce: Optional[str] = None
    latitude: float
    longitude: float
    visible: bool
    general_public: bool
    public_level: int
    payment_status: PaymentStatus
    last_updated_by: UpdatedBy
    updated_at: Optional[datetime] = None


class ProfileEnvelope(BaseModel):
    """``profile`` is ``None`` when no member row is linked to the account."""
    profile: Optional[ProfileResponse] = None
    message: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    """Patch of the editable profile fields. Unknown fields are rejected."""
    model_config = ConfigDict(extra="forbid")

    display_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    company_name: Optional[str] = Field(default=None, max_length=200)
    industry_1: Optional[str] = Field(default=None, max_length=100)
    industry_2: Optional[str] = Field(default=None, max_length=100)
    want_to_introduce: Optional[str] = Field(default=None, max_length=2000)
    can_introduce: Optional[str] = Field(default=None, max_length=2000)
    visible: Optional[bool] = None
    general_public: Optional[bool] = None
