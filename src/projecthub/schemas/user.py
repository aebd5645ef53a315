"""Pydantic schemas for profile and company-user endpoints."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from projecthub.auth.roles import Role
from projecthub.schemas.base import ApiModel


class ProfileRead(ApiModel):
    id: uuid.UUID
    email: str
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role
    tenant_id: Optional[uuid.UUID] = None
    company_name: Optional[str] = None


class ProfileUpdate(ApiModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    company_name: Optional[str] = Field(None, min_length=1, max_length=200)


class CompanyUserRead(ApiModel):
    id: uuid.UUID
    email: str
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role
    created_at: datetime
