"""
Visibility policy for directory reads.

Decides, from the viewer and the level they ask for, which member rows and
which member fields a directory query may return. The level a client sends
is advisory: it is always capped at the viewer's clearance here, and the
Postgres row-level policies enforce the same rule again inside the store.

Levels:
- 1 (anonymous): general_public members only, pin fields
- 2 (member): adds company and second industry
- 3 (full): adds the matchmaking text

Admins are cleared for level 3. The unfiltered "list all" read used by the
admin console does not go through this module at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

import structlog

from app.models.member import Member
from membermap_shared.schemas.common import DisclosureLevel, PaymentStatus

if TYPE_CHECKING:
    from app.core.auth import Viewer

log = structlog.get_logger()

PIN_FIELDS = ("id", "display_name", "industry_1", "latitude", "longitude")

MEMBER_FIELDS_BY_LEVEL: dict[DisclosureLevel, tuple[str, ...]] = {
    DisclosureLevel.ANONYMOUS: PIN_FIELDS,
    DisclosureLevel.MEMBER: PIN_FIELDS + ("company_name", "industry_2"),
    DisclosureLevel.FULL: PIN_FIELDS
    + ("company_name", "industry_2", "want_to_introduce", "can_introduce"),
}


def viewer_clearance(viewer: Optional["Viewer"]) -> DisclosureLevel:
    """Highest level this viewer may ever be served."""
    if viewer is None:
        return DisclosureLevel.ANONYMOUS
    if viewer.is_admin:
        return DisclosureLevel.FULL
    member = viewer.member
    if member is not None and member.payment_status == PaymentStatus.ACTIVE.value:
        return DisclosureLevel.FULL
    return DisclosureLevel.MEMBER


def resolve_disclosure_level(
    viewer: Optional["Viewer"], requested: Optional[int] = None
) -> DisclosureLevel:
    """Level actually served: the requested level capped at the viewer's clearance."""
    clearance = viewer_clearance(viewer)
    if requested is None:
        return clearance
    level = max(DisclosureLevel.ANONYMOUS, min(int(requested), clearance))
    if level < requested:
        log.debug(
            "visibility.level_downgraded",
            requested=int(requested),
            served=int(level),
            authenticated=viewer is not None,
        )
    return DisclosureLevel(level)


@dataclass(frozen=True)
class MemberQueryFilter:
    """Row filter for directory member reads: ``visible AND public_level <= level``."""

    visible: bool
    max_public_level: DisclosureLevel
    general_public_only: bool = False

    def apply(self, stmt):
        """Narrow a ``select(Member)`` statement to the rows this filter allows."""
        stmt = stmt.where(
            Member.visible.is_(self.visible),
            Member.public_level <= int(self.max_public_level),
        )
        if self.general_public_only:
            stmt = stmt.where(Member.general_public.is_(True))
        return stmt

    def allows(self, member: Member) -> bool:
        if bool(member.visible) != self.visible:
            return False
        if member.public_level > self.max_public_level:
            return False
        if self.general_public_only and not member.general_public:
            return False
        return True

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "visible": self.visible,
            "public_level__lte": int(self.max_public_level),
        }
        if self.general_public_only:
            data["general_public"] = True
        return data


def build_member_query_filter(level: int) -> MemberQueryFilter:
    level = DisclosureLevel(level)
    return MemberQueryFilter(
        visible=True,
        max_public_level=level,
        general_public_only=level == DisclosureLevel.ANONYMOUS,
    )


def project_member(member: Member, level: int) -> dict[str, Any]:
    """Return only the member fields the given level may see."""
    fields = MEMBER_FIELDS_BY_LEVEL[DisclosureLevel(level)]
    return {name: getattr(member, name) for name in fields}
