"""Pydantic schemas for templates."""

import uuid
from datetime import datetime
from typing import Optional

from projecthub.schemas.base import ApiModel


class TemplateRead(ApiModel):
    id: uuid.UUID
    name: str
    content: str
    is_global: bool
    tenant_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
