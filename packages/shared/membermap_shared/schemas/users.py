"""Identity schemas (sign-up, sign-in, current user)."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, EmailStr, UUID4

from .common import DisclosureLevel, Role


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    user_id: str
    email: str
    message: str


class CurrentUserResponse(BaseModel):
    """The signed-in user as seen by the directory."""
    id: UUID4
    email: str
    role: Optional[Role] = None  # None until a member row is linked
    clearance: DisclosureLevel
    has_profile: bool
