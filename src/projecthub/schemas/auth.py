"""Pydantic schemas for the auth endpoints."""

import uuid
from typing import Optional

from pydantic import EmailStr, Field

from projecthub.auth.roles import Role
from projecthub.schemas.base import ApiModel


class CheckUserRequest(ApiModel):
    email: EmailStr


class CheckUserResponse(ApiModel):
    exists: bool
    has_password: bool


class LoginRequest(ApiModel):
    email: EmailStr
    password: Optional[str] = None


class MagicLinkRequest(ApiModel):
    email: EmailStr


class MagicLinkResponse(ApiModel):
    """`magic_link` and `token` are only filled in outside production."""
    message: str
    magic_link: Optional[str] = None
    token: Optional[str] = None
    user_exists: Optional[bool] = None
    has_password: Optional[bool] = None


class VerifyMagicLinkResponse(ApiModel):
    email: str
    token: str


class SetPasswordRequest(ApiModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8)


class SessionUser(ApiModel):
    id: uuid.UUID
    email: str
    name: Optional[str] = None
    role: Role
    tenant_id: Optional[uuid.UUID] = None
    company_name: Optional[str] = None


class AuthResponse(ApiModel):
    token: str
    user: SessionUser


class MessageResponse(ApiModel):
    message: str
