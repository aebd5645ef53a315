"""Auth service — password login and the magic-link flow.

Learn: Service layer separates business logic from HTTP routing.
The magic-link flow is a small state machine per token:

  issued ──verify──▶ issued (unchanged, token stays redeemable)
  issued ──set-password──▶ consumed (entry removed from the store)
  issued ──time passes──▶ expired (entry treated as absent)

Redemption claims the store entry first (atomic pop), then writes to the
database. Two concurrent redemptions of one token cannot both get past
the claim, so a tenant is never created twice. If the database write
fails the entry is put back and the link can be retried.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from projecthub.auth.jwt import (
    MAGIC_LINK_TOKEN_TYPE,
    TokenError,
    create_magic_link_token,
    create_session_token,
    verify_token,
)
from projecthub.auth.magic_links import MagicLinkStore
from projecthub.auth.password import hash_password, verify_password
from projecthub.auth.roles import Role
from projecthub.config import Settings, settings as default_settings
from projecthub.db.models import Tenant, User
from projecthub.errors import (
    BadRequestError,
    InvalidOrExpiredTokenError,
    InvalidStateError,
    InvalidTokenTypeError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
)
from projecthub.services.mailer import Mailer

logger = structlog.get_logger()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MagicLinkIssued:
    token: str
    link: str
    expires_at: datetime
    user_exists: bool
    has_password: bool
    delivered: bool  # mailed (production) vs handed back to the caller


def tenant_name_for(email: str) -> str:
    """Default company name for a self-registered user: "<local part> Company"."""
    return f"{email.split('@')[0]} Company"


def session_user(user: User) -> dict:
    """The `user` object returned next to a session token."""
    return {
        "id": user.id,
        "email": user.email,
        "name": user.display_name,
        "role": user.role,
        "tenant_id": user.tenant_id,
        "company_name": user.tenant.name if user.tenant else None,
    }


def issue_session_token(user: User) -> str:
    return create_session_token(
        user_id=user.id,
        email=user.email,
        tenant_id=user.tenant_id,
        role=user.role,
    )


class AuthService:
    """Credential verification, magic links and session issuance."""

    def __init__(
        self,
        db: AsyncSession,
        store: MagicLinkStore,
        mailer: Optional[Mailer] = None,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.store = store
        self.settings = settings
        self.mailer = mailer or Mailer(settings)
        self.clock = clock

    # ─── Lookups ────────────────────────────────────────

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(
            select(User)
            .where(User.email == email)
            .options(selectinload(User.tenant))
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def get_user(self, user_id) -> User | None:
        result = await self.db.execute(
            select(User)
            .where(User.id == user_id)
            .options(selectinload(User.tenant))
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def check_user(self, email: str) -> tuple[bool, bool]:
        """Return (exists, has_password) for an email."""
        user = await self.get_user_by_email(email)
        return user is not None, bool(user and user.password_hash)

    # ─── Password login ─────────────────────────────────

    async def login(self, email: str, password: Optional[str]) -> tuple[User, str]:
        """Verify credentials and mint a session token.

        Learn: A user without a password hash gets InvalidState, never
        Unauthorized — the client should switch to the magic-link flow,
        not retry the password.
        """
        user = await self.get_user_by_email(email)
        if not user:
            raise NotFoundError("User not found")

        if not user.password_hash:
            raise InvalidStateError(
                "Password not set. Please use magic link to set your password."
            )

        if not password:
            raise BadRequestError("Password required")

        if not verify_password(password, user.password_hash):
            logger.info("projecthub.auth.login_failed", user_id=str(user.id))
            raise UnauthorizedError("Invalid password")

        logger.info("projecthub.auth.login", user_id=str(user.id))
        return user, issue_session_token(user)

    # ─── Magic links ────────────────────────────────────

    def _link_for(self, token: str) -> str:
        return f"{self.settings.web_url.rstrip('/')}/magic-link?token={token}"

    async def issue_magic_link(self, email: str) -> MagicLinkIssued:
        user = await self.get_user_by_email(email)

        if not user and not self.settings.self_signup_enabled:
            logger.info("projecthub.auth.magic_link_refused", reason="unknown_email")
            raise NotFoundError("User not found")

        expires_at = self.clock() + timedelta(
            minutes=self.settings.magic_link_expire_minutes
        )
        token = create_magic_link_token(email, expires_at)
        await self.store.put(token, email, expires_at)
        link = self._link_for(token)

        issued = MagicLinkIssued(
            token=token,
            link=link,
            expires_at=expires_at,
            user_exists=user is not None,
            has_password=bool(user and user.password_hash),
            delivered=False,
        )

        if not self.settings.is_production:
            logger.info(
                "projecthub.auth.magic_link_issued",
                email=email,
                magic_link=link,
                user_exists=issued.user_exists,
            )
            return issued

        if not await self.mailer.send_magic_link(email, link):
            await self.store.pop(token, self.clock())
            raise ServiceUnavailableError("Could not send magic link, try again later")

        issued.delivered = True
        logger.info("projecthub.auth.magic_link_sent", user_exists=issued.user_exists)
        return issued

    async def verify_magic_link(self, token: str) -> str:
        """Check a magic-link token without consuming it. Returns the bound email."""
        entry = await self.store.get(token, self.clock())
        if entry is None:
            raise InvalidOrExpiredTokenError()

        try:
            payload = verify_token(token)
        except TokenError:
            raise InvalidOrExpiredTokenError("Invalid token")

        if payload.get("type") != MAGIC_LINK_TOKEN_TYPE:
            raise InvalidTokenTypeError()

        if payload.get("email") != entry.email:
            raise InvalidOrExpiredTokenError("Invalid token")

        return entry.email

    async def set_password(self, token: str, password: str) -> tuple[User, str]:
        """Redeem a magic link: set the password, creating the user if needed."""
        email = await self.verify_magic_link(token)
        password_hash = hash_password(password)

        entry = await self.store.pop(token, self.clock())
        if entry is None:
            # Someone else redeemed it between verify and pop
            raise InvalidOrExpiredTokenError()

        try:
            user = await self._apply_password(email, password_hash)
        except Exception:
            await self.db.rollback()
            await self.store.put(token, entry.email, entry.expires_at)
            raise

        return user, issue_session_token(user)

    async def _apply_password(self, email: str, password_hash: str) -> User:
        user = await self.get_user_by_email(email)

        if user:
            user.password_hash = password_hash
            await self.db.commit()
            logger.info("projecthub.auth.password_set", user_id=str(user.id))
            return user

        if not self.settings.self_signup_enabled:
            raise NotFoundError("User not found")

        # First user of a new company becomes its administrator
        tenant = Tenant(name=tenant_name_for(email))
        user = User(
            email=email,
            password_hash=password_hash,
            role=Role.COMPANY_ADMINISTRATOR,
            tenant=tenant,
        )
        self.db.add_all([tenant, user])
        await self.db.commit()
        logger.info(
            "projecthub.auth.user_registered",
            user_id=str(user.id),
            tenant_id=str(tenant.id),
        )
        return user
