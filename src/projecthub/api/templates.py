"""Template API routes — read-only, global or tenant-scoped."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from projecthub.auth.dependencies import CurrentIdentity, get_current_user
from projecthub.db.engine import get_db
from projecthub.schemas.template import TemplateRead
from projecthub.services.template_service import TemplateService

router = APIRouter(prefix="/templates")


def _svc(db: AsyncSession = Depends(get_db)) -> TemplateService:
    return TemplateService(db)


@router.get("", response_model=list[TemplateRead])
async def list_templates(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TemplateService = Depends(_svc),
):
    return await svc.list_templates(identity)


@router.get("/{template_id}", response_model=TemplateRead)
async def get_template(
    template_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TemplateService = Depends(_svc),
):
    return await svc.get_template(template_id, identity)
