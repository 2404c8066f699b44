"""
Directory schemas: branches, redacted member pins, and the map view.

Member pins carry only the fields the served disclosure level allows; the
rest stay ``None`` and are dropped from the JSON payload by the server.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from pydantic import BaseModel, Field

from .common import DisclosureLevel, MarkerKind


class BranchResponse(BaseModel):
    """Branch as shown on the public map."""
    id: uuid.UUID
    name: str
    region: str
    city: Optional[str] = None
    latitude: float
    longitude: float
    member_count: int = 0


class BranchListResponse(BaseModel):
    """Public branches. ``error`` is set when the read failed and ``data`` was substituted."""
    data: List[BranchResponse]
    error: Optional[str] = None


class DirectoryMember(BaseModel):
    """A member pin, projected to the served disclosure level."""
    id: uuid.UUID
    display_name: str
    latitude: float
    longitude: float
    industry_1: Optional[str] = None
    # Level 2 and up
    company_name: Optional[str] = None
    industry_2: Optional[str] = None
    # Level 3 only
    want_to_introduce: Optional[str] = None
    can_introduce: Optional[str] = None


class DirectoryMemberListResponse(BaseModel):
    data: List[DirectoryMember]
    level: DisclosureLevel
    error: Optional[str] = None


class MapMarker(BaseModel):
    kind: MarkerKind
    id: uuid.UUID
    label: str
    latitude: float
    longitude: float
    detail: Optional[str] = None


class MapView(BaseModel):
    """Everything needed to draw one directory screen. Nothing here is persisted."""
    center: tuple[float, float]
    zoom: int = Field(ge=0, le=19)
    tile_url: str
    attribution: str
    level: DisclosureLevel
    markers: List[MapMarker]
    selected: Optional[MapMarker] = None
    errors: List[str] = Field(default_factory=list)


def build_markers(
    branches: List[BranchResponse], members: List[DirectoryMember]
) -> List[MapMarker]:
    """Branch markers first, then member pins."""
    markers = [
        MapMarker(
            kind=MarkerKind.BRANCH,
            id=b.id,
            label=b.name,
            latitude=b.latitude,
            longitude=b.longitude,
            detail=" ".join(p for p in (b.region, b.city) if p),
        )
        for b in branches
    ]
    markers.extend(
        MapMarker(
            kind=MarkerKind.MEMBER,
            id=m.id,
            label=m.display_name,
            latitude=m.latitude,
            longitude=m.longitude,
            detail=m.industry_1,
        )
        for m in members
    )
    return markers
