"""
Authentication and Authorization for Member Map.

Supports:
- Email/Password sign-up and sign-in (bcrypt)
- JWT session cookie with Redis revocation list
- Optional viewer resolution for the public directory
- Admin authorization based on the stored member role
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import get_session, set_row_context
from app.core.redis import get_redis
from app.models.member import Member
from app.models.user import User
from membermap_shared.schemas.common import Role

log = structlog.get_logger()
settings = get_settings()

SESSION_COOKIE = "map_session"
CSRF_COOKIE = "map_csrf"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    email: str,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# JWT Revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_jwt(jti: str, ttl_seconds: int | None = None) -> None:
    """Add a JWT ID to the revocation list in Redis."""
    redis = await get_redis()
    ttl = ttl_seconds or settings.jwt_expire_minutes * 60
    await redis.setex(f"jwt:revoked:{jti}", ttl, "1")


async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(f"jwt:revoked:{jti}") > 0


# ---------------------------------------------------------------------------
# CSRF Token
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Viewer resolution
# ---------------------------------------------------------------------------

class Viewer:
    """An authenticated caller plus their member row, if one is linked."""

    def __init__(self, user: User, member: Optional[Member]):
        self.user = user
        self.member = member
        self.user_id = user.id
        self.email = user.email
        self.role = member.role if member is not None else None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


async def _authenticate_jwt(token: str, session: AsyncSession) -> Viewer:
    """Authenticate a user via the session cookie."""
    try:
        payload = decode_jwt(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        raise HTTPException(status_code=401, detail="Session has been revoked")

    user_id = uuid.UUID(payload["sub"])
    await set_row_context(session, user_id=user_id)

    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    result = await session.execute(select(Member).where(Member.user_id == user_id))
    member = result.scalar_one_or_none()

    viewer = Viewer(user=user, member=member)
    await set_row_context(session, email=user.email, is_admin=viewer.is_admin)
    return viewer


async def get_optional_viewer(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> Optional[Viewer]:
    """Resolve the caller if a session cookie is present; ``None`` for anonymous viewers.

    An expired, revoked or unreadable cookie also resolves to ``None``: public
    reads fall back to the anonymous level instead of failing.
    """
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    try:
        viewer = await _authenticate_jwt(token, session)
    except HTTPException as exc:
        if exc.status_code != 401:
            raise
        log.info("auth.stale_session_ignored", path=request.url.path, reason=exc.detail)
        return None
    request.state.viewer = viewer
    return viewer


async def get_viewer(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> Viewer:
    """Main authentication dependency: a valid session is required."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")
    viewer = await _authenticate_jwt(token, session)
    request.state.viewer = viewer
    return viewer


# ---------------------------------------------------------------------------
# Authorization dependencies (role checks)
# ---------------------------------------------------------------------------

async def require_admin(
    request: Request,
    viewer: Viewer = Depends(get_viewer),
) -> Viewer:
    """Requires the caller's stored member role to be ``admin``."""
    if not viewer.is_admin:
        log.warning(
            "authz.denied",
            user_id=str(viewer.user_id),
            role=viewer.role,
            path=request.url.path,
        )
        raise HTTPException(status_code=403, detail="Administrator access required")
    return viewer
