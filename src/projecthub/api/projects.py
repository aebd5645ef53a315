"""Project API routes.

Learn: Routes handle HTTP concerns (status codes, guards); ProjectService
holds the visibility rules. Creating a project runs the full guard chain:
authenticated → has a tenant → is an administrator.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from projecthub.auth.dependencies import (
    CurrentIdentity,
    get_current_user,
    guard,
    require_roles,
    require_tenant,
)
from projecthub.auth.roles import ADMIN_ROLES
from projecthub.db.engine import get_db
from projecthub.schemas.project import ProjectCreate, ProjectRead
from projecthub.services.project_service import ProjectService, project_payload

router = APIRouter(prefix="/projects")

_admin_in_tenant = guard(require_tenant, require_roles(*ADMIN_ROLES))


def _svc(db: AsyncSession = Depends(get_db)) -> ProjectService:
    return ProjectService(db)


@router.get("", response_model=list[ProjectRead])
async def list_projects(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ProjectService = Depends(_svc),
):
    """Newest first. Admins see the whole tenant, others their own projects."""
    projects = await svc.list_projects(identity)
    return [project_payload(p) for p in projects]


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ProjectService = Depends(_svc),
):
    project = await svc.get_project(project_id, identity)
    return project_payload(project)


@router.post("", response_model=ProjectRead, status_code=201)
async def create_project(
    body: ProjectCreate,
    identity: CurrentIdentity = Depends(_admin_in_tenant),
    svc: ProjectService = Depends(_svc),
):
    project = await svc.create_project(
        identity,
        name=body.name,
        type=body.type,
        start_date=body.start_date,
        end_date=body.end_date,
        member_ids=body.member_ids,
    )
    return project_payload(project)
