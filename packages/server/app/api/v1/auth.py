"""
Authentication endpoints (identity service).

- Email/Password sign-up & sign-in
- JWT session management (refresh, logout)
- Current user
"""

from __future__ import annotations

import uuid
from typing import Optional

import jwt
import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import (
    CSRF_COOKIE,
    SESSION_COOKIE,
    Viewer,
    create_jwt,
    decode_jwt,
    generate_csrf_token,
    get_viewer,
    hash_password,
    is_jwt_revoked,
    revoke_jwt,
    verify_password,
)
from app.core.config import get_settings
from app.core.database import get_session
from app.core.visibility import viewer_clearance
from app.models.user import User
from membermap_shared.schemas.common import Role
from membermap_shared.schemas.users import (
    AuthResponse,
    CurrentUserResponse,
    LoginRequest,
    RegisterRequest,
)

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()

# Cookie config
COOKIE_KWARGS = {
    "httponly": True,
    "secure": settings.cookie_secure,
    "samesite": "lax",
    "path": "/",
    "max_age": settings.jwt_expire_minutes * 60,
}


def _set_session_cookies(response: Response, token: str, csrf: str) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    response.set_cookie(key=SESSION_COOKIE, value=token, **COOKIE_KWARGS)
    response.set_cookie(
        key=CSRF_COOKIE,
        value=csrf,
        httponly=False,  # JS must read this
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
        max_age=settings.jwt_expire_minutes * 60,
    )


def _issue_session(response: Response, user: User) -> None:
    token, _jti = create_jwt(user_id=user.id, email=user.email)
    _set_session_cookies(response, token, generate_csrf_token())


# ---------------------------------------------------------------------------
# Email/Password Registration & Login
# ---------------------------------------------------------------------------

@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Sign up with email/password and start a session."""
    email = body.email.lower()
    result = await session.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Email already registered")

    if len(body.password) < settings.min_password_length:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {settings.min_password_length} characters",
        )

    user = User(
        id=uuid.uuid4(),
        email=email,
        password_hash=hash_password(body.password),
    )
    session.add(user)
    await session.flush()

    _issue_session(response, user)
    log.info("user.registered", user_id=str(user.id), email=email)
    return AuthResponse(
        user_id=str(user.id),
        email=email,
        message="Registration successful",
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with email/password and receive a JWT session."""
    email = body.email.lower()
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user or not user.password_hash:
        log.warning("auth.login_failure", email=email, reason="unknown_user")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not verify_password(body.password, user.password_hash):
        log.warning("auth.login_failure", email=email, reason="bad_password")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    _issue_session(response, user)
    log.info("auth.login_success", user_id=str(user.id), email=email)
    return AuthResponse(
        user_id=str(user.id),
        email=email,
        message="Login successful",
    )


# ---------------------------------------------------------------------------
# Session Management
# ---------------------------------------------------------------------------

@router.get("/me", response_model=CurrentUserResponse)
async def current_user(viewer: Viewer = Depends(get_viewer)):
    """The signed-in user, their stored role and directory clearance."""
    return CurrentUserResponse(
        id=viewer.user_id,
        email=viewer.email,
        role=Role(viewer.role) if viewer.role else None,
        clearance=viewer_clearance(viewer),
        has_profile=viewer.member is not None,
    )


def _session_claims(request: Request) -> Optional[dict]:
    """Claims of the request's session cookie; ``None`` if absent or unreadable."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    try:
        return decode_jwt(token)
    except jwt.PyJWTError:
        return None


def _clear_session_cookies(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")


@router.post("/refresh")
async def refresh_session(request: Request, response: Response):
    """Swap the session JWT for a fresh one; the old ``jti`` is revoked."""
    claims = _session_claims(request)
    if claims is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    old_jti = claims.get("jti")
    if old_jti and await is_jwt_revoked(old_jti):
        raise HTTPException(status_code=401, detail="Session has been revoked")

    new_token, _new_jti = create_jwt(
        user_id=uuid.UUID(claims["sub"]),
        email=claims["email"],
    )
    if old_jti:
        await revoke_jwt(old_jti)

    _set_session_cookies(response, new_token, generate_csrf_token())
    log.info("auth.session_refreshed", user_id=claims["sub"])
    return {"message": "Session refreshed"}


@router.post("/logout")
async def logout(request: Request, response: Response):
    """End the session. Cookies are cleared even when the JWT is already invalid."""
    claims = _session_claims(request) or {}
    jti = claims.get("jti")
    if jti:
        await revoke_jwt(jti)
        log.info("auth.logout", user_id=claims.get("sub"))

    _clear_session_cookies(response)
    return {"message": "Logged out"}
