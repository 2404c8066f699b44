from enum import Enum, IntEnum

from pydantic import BaseModel


class DisclosureLevel(IntEnum):
    """Ordinal viewer clearance gating which member rows a query may return."""
    ANONYMOUS = 1
    MEMBER = 2
    FULL = 3


class Role(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"


class PaymentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class UpdatedBy(str, Enum):
    SELF = "self"
    ADMIN = "admin"


class MarkerKind(str, Enum):
    BRANCH = "branch"
    MEMBER = "member"


class Pagination(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int


class ErrorDetail(BaseModel):
    code: str
    message: str
    status: int


class ErrorResponse(BaseModel):
    error: ErrorDetail

