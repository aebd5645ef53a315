"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract and
validate the current identity from the request.

Guard chain for privileged routes, evaluated left to right:
1. authenticate   — Bearer session JWT for a user that still exists (401)
2. require_tenant — the user belongs to a tenant (403)
3. require_roles  — the user's role is in the route's allowed set (403)

The first failing check raises; later checks never run. Role and tenant
come from the database row, not from the token, so a demotion or a
tenant move takes effect on the very next request.
"""

import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from projecthub.auth.jwt import SESSION_TOKEN_TYPE, TokenError, verify_token
from projecthub.auth.roles import Role, is_admin
from projecthub.db.engine import get_db
from projecthub.db.models import User
from projecthub.errors import ForbiddenError, UnauthorizedError


@dataclass(frozen=True)
class CurrentIdentity:
    """The authenticated user making the request, as of this request."""

    user_id: uuid.UUID
    email: str
    tenant_id: Optional[uuid.UUID]
    role: Role

    @property
    def is_admin(self) -> bool:
        return is_admin(self.role)

    @classmethod
    def from_user(cls, user: User) -> "CurrentIdentity":
        return cls(
            user_id=user.id,
            email=user.email,
            tenant_id=user.tenant_id,
            role=user.role,
        )


Check = Callable[[CurrentIdentity], None]


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Authentication required")
    token = authorization[7:].strip()
    if not token:
        raise UnauthorizedError("Authentication required")
    return token


async def authenticate(token: str, db: AsyncSession) -> CurrentIdentity:
    """Resolve a session token to the live identity it names."""
    try:
        payload = verify_token(token)
    except TokenError as e:
        raise UnauthorizedError(str(e))

    if payload.get("type") != SESSION_TOKEN_TYPE:
        raise UnauthorizedError("Not a session token")

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedError("Invalid token subject")

    user = await db.get(User, user_id)
    if not user:
        raise UnauthorizedError("User not found")

    return CurrentIdentity.from_user(user)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no valid session)."""
    return await authenticate(_bearer_token(authorization), db)


# ─── Checks ─────────────────────────────────────────────


def require_tenant(identity: CurrentIdentity) -> None:
    if identity.tenant_id is None:
        raise ForbiddenError("Tenant required")


def require_roles(*allowed: Role) -> Check:
    """Build a check that passes only for identities with a role in `allowed`."""
    allowed_set = frozenset(Role(r) for r in allowed)

    def _check(identity: CurrentIdentity) -> None:
        if identity.role not in allowed_set:
            raise ForbiddenError("Forbidden")

    return _check


def guard(*checks: Check):
    """Compose checks into a dependency that runs after authentication.

    Example:
        @router.post("/projects")
        async def create(
            identity: CurrentIdentity = Depends(
                guard(require_tenant, require_roles(*ADMIN_ROLES))
            ),
        ): ...
    """

    async def _dependency(
        identity: CurrentIdentity = Depends(get_current_user),
    ) -> CurrentIdentity:
        for check in checks:
            check(identity)
        return identity

    return _dependency
