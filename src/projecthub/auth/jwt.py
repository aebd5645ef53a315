"""JWT token creation and verification.

Learn: Two kinds of token share one signing key, told apart by `type`:
- Session token: bearer credential carrying user id, email, tenant and role.
  Expiry is configurable; 0 means the token never expires on its own.
- Magic-link token: short-lived (1h), bound to an email, only good for
  setting a password. A random `jti` makes every link unique even when
  two are issued for the same email in the same second.

The claims in a session token are a hint, not the truth — dependencies.py
reloads the user on every request.
"""

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from projecthub.auth.roles import Role
from projecthub.config import settings

SESSION_TOKEN_TYPE = "session"
MAGIC_LINK_TOKEN_TYPE = "magic-link"


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_session_token(
    user_id: uuid.UUID | str,
    email: str,
    tenant_id: Optional[uuid.UUID | str],
    role: Role | str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a signed session credential."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "tenant_id": str(tenant_id) if tenant_id else None,
        "role": Role(role).value,
        "type": SESSION_TOKEN_TYPE,
        "iat": now,
    }
    minutes = (
        settings.session_token_expire_minutes
        if expires_minutes is None
        else expires_minutes
    )
    if minutes > 0:
        payload["exp"] = now + timedelta(minutes=minutes)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_magic_link_token(email: str, expires_at: datetime) -> str:
    """Create a signed magic-link token that expires at `expires_at`."""
    payload = {
        "email": email,
        "type": MAGIC_LINK_TOKEN_TYPE,
        "jti": secrets.token_urlsafe(16),
        "iat": datetime.now(timezone.utc),
        "exp": expires_at,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
        return payload
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
