"""Auth API — password login, magic links, current user.

Learn: Routes for the authentication lifecycle:
- POST /auth/check-user → does the email exist, does it have a password
- POST /auth/login → email/password → session JWT
- POST /auth/magic-link → issue a one-time link (returned directly outside production)
- GET /auth/verify-magic-link → check a link without consuming it
- POST /auth/set-password → redeem a link, set the password → session JWT
- GET /auth/me → current user info
- POST /auth/logout → stateless; the client drops its token
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from projecthub.auth.dependencies import CurrentIdentity, get_current_user
from projecthub.auth.magic_links import MagicLinkStore, get_magic_link_store
from projecthub.db.engine import get_db
from projecthub.errors import NotFoundError
from projecthub.schemas.auth import (
    AuthResponse,
    CheckUserRequest,
    CheckUserResponse,
    LoginRequest,
    MagicLinkRequest,
    MagicLinkResponse,
    MessageResponse,
    SessionUser,
    SetPasswordRequest,
    VerifyMagicLinkResponse,
)
from projecthub.services.auth_service import AuthService, session_user
from projecthub.services.mailer import Mailer, get_mailer

router = APIRouter(prefix="/auth")


def _svc(
    db: AsyncSession = Depends(get_db),
    store: MagicLinkStore = Depends(get_magic_link_store),
    mailer: Mailer = Depends(get_mailer),
) -> AuthService:
    return AuthService(db, store, mailer=mailer)


# ─── Password login ─────────────────────────────────────


@router.post("/check-user", response_model=CheckUserResponse)
async def check_user(body: CheckUserRequest, svc: AuthService = Depends(_svc)):
    exists, has_password = await svc.check_user(body.email)
    return CheckUserResponse(exists=exists, has_password=has_password)


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, svc: AuthService = Depends(_svc)):
    """Login with email and password → session JWT."""
    user, token = await svc.login(body.email, body.password)
    return {"token": token, "user": session_user(user)}


# ─── Magic links ────────────────────────────────────────


@router.post(
    "/magic-link",
    response_model=MagicLinkResponse,
    response_model_exclude_none=True,
)
async def request_magic_link(body: MagicLinkRequest, svc: AuthService = Depends(_svc)):
    issued = await svc.issue_magic_link(body.email)

    if issued.delivered:
        return MagicLinkResponse(message="Magic link sent to your email")

    return MagicLinkResponse(
        message=(
            "Magic link generated (dev mode)"
            if issued.user_exists
            else "Magic link generated for new user (dev mode)"
        ),
        magic_link=issued.link,
        token=issued.token,
        user_exists=issued.user_exists,
        has_password=issued.has_password,
    )


@router.get("/verify-magic-link", response_model=VerifyMagicLinkResponse)
async def verify_magic_link(
    token: str = Query(..., min_length=1),
    svc: AuthService = Depends(_svc),
):
    email = await svc.verify_magic_link(token)
    return VerifyMagicLinkResponse(email=email, token=token)


@router.post("/set-password", response_model=AuthResponse)
async def set_password(body: SetPasswordRequest, svc: AuthService = Depends(_svc)):
    user, token = await svc.set_password(body.token, body.password)
    return {"token": token, "user": session_user(user)}


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=SessionUser)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_svc),
):
    """Get the current authenticated user's info."""
    user = await svc.get_user(identity.user_id)
    if not user:
        raise NotFoundError("User not found")
    return session_user(user)


@router.post("/logout", response_model=MessageResponse)
async def logout(identity: CurrentIdentity = Depends(get_current_user)):
    """Stateless logout — the token stays valid until it expires."""
    return MessageResponse(message="Logged out")
