"""Pydantic schemas for projects.

Learn: Separate "Create" schemas (input) from "Read" schemas (output).
Members are embedded in every project response as a short user card.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import Field, model_validator

from projecthub.schemas.base import ApiModel


class MemberRead(ApiModel):
    id: uuid.UUID
    email: str
    name: Optional[str] = None


class ProjectCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: Optional[str] = Field(None, max_length=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    member_ids: list[uuid.UUID] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class ProjectRead(ApiModel):
    id: uuid.UUID
    name: str
    type: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    tenant_id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    members: list[MemberRead] = []
