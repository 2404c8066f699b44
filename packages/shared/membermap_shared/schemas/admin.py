"""Admin console schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from .common import Pagination, PaymentStatus, Role, UpdatedBy


class AdminMemberRow(BaseModel):
    """One row of the member table (unredacted)."""
    id: uuid.UUID
    display_name: str
    user_id: Optional[uuid.UUID] = None
    branch_id: Optional[uuid.UUID] = None
    role: Role
    visible: bool
    general_public: bool
    public_level: int
    payment_status: PaymentStatus
    last_updated_by: UpdatedBy
    updated_at: Optional[datetime] = None


class AdminMemberPage(BaseModel):
    data: List[AdminMemberRow]
    pagination: Pagination


class AdminBranchCard(BaseModel):
    id: uuid.UUID
    name: str
    region: str
    city: Optional[str] = None
    public: bool
    member_count: int


class AdminBranchList(BaseModel):
    data: List[AdminBranchCard]


class AdminMetrics(BaseModel):
    """Dashboard tiles."""
    total_members: int
    visible_members: int
    active_members: int
    branch_count: int


class ToggleVisibilityResponse(BaseModel):
    member: AdminMemberRow
