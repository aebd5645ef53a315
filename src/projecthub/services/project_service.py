"""Project service — tenant-scoped project CRUD.

Learn: Visibility rules live here, not in the routes:
- admins (company or global) see every project of their own tenant
- everyone else sees only projects they are a member of
A project that exists but is not visible is Forbidden, not NotFound.
"""

import uuid
from datetime import date
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from projecthub.auth.dependencies import CurrentIdentity
from projecthub.db.models import Project, ProjectMember, User
from projecthub.errors import BadRequestError, ForbiddenError, NotFoundError

logger = structlog.get_logger()


def project_payload(project: Project) -> dict:
    """Project plus its members as short user cards."""
    return {
        "id": project.id,
        "name": project.name,
        "type": project.type,
        "start_date": project.start_date,
        "end_date": project.end_date,
        "tenant_id": project.tenant_id,
        "created_at": project.created_at,
        "updated_at": project.updated_at,
        "members": [
            {
                "id": m.user.id,
                "email": m.user.email,
                "name": m.user.display_name,
            }
            for m in project.members
        ],
    }


class ProjectService:
    """Business logic for projects and memberships."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _with_members(self):
        return selectinload(Project.members).selectinload(ProjectMember.user)

    async def list_projects(self, identity: CurrentIdentity) -> list[Project]:
        q = select(Project).options(self._with_members())

        if identity.is_admin:
            if identity.tenant_id is None:
                return []
            q = q.where(Project.tenant_id == identity.tenant_id)
        else:
            member_of = select(ProjectMember.project_id).where(
                ProjectMember.user_id == identity.user_id
            )
            q = q.where(Project.id.in_(member_of))

        q = q.order_by(Project.created_at.desc())
        result = await self.db.execute(q.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def get_project(
        self, project_id: uuid.UUID, identity: CurrentIdentity
    ) -> Project:
        result = await self.db.execute(
            select(Project)
            .where(Project.id == project_id)
            .options(self._with_members())
            .execution_options(populate_existing=True)
        )
        project = result.scalars().first()
        if not project:
            raise NotFoundError("Project not found")

        is_member = any(m.user_id == identity.user_id for m in project.members)
        is_tenant_admin = identity.is_admin and identity.tenant_id == project.tenant_id
        if not is_member and not is_tenant_admin:
            raise ForbiddenError("Access denied")

        return project

    async def create_project(
        self,
        identity: CurrentIdentity,
        name: str,
        type: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        member_ids: Optional[list[uuid.UUID]] = None,
    ) -> Project:
        """Create a project and its memberships in one transaction.

        Learn: Every member id must resolve to a user of the creator's own
        tenant. One bad id rejects the whole request — nothing is written,
        and unknown ids are not silently dropped.
        """
        if identity.tenant_id is None:
            raise ForbiddenError("Tenant required")

        wanted = list(dict.fromkeys(member_ids or []))
        if wanted:
            result = await self.db.execute(
                select(User.id).where(
                    User.id.in_(wanted),
                    User.tenant_id == identity.tenant_id,
                )
            )
            found = set(result.scalars().all())
            if len(found) != len(wanted):
                logger.info(
                    "projecthub.projects.invalid_members",
                    tenant_id=str(identity.tenant_id),
                    requested=len(wanted),
                    resolved=len(found),
                )
                raise BadRequestError(
                    "Some members not found or belong to different tenant"
                )

        project = Project(
            name=name,
            type=type,
            start_date=start_date,
            end_date=end_date,
            tenant_id=identity.tenant_id,
            members=[ProjectMember(user_id=uid) for uid in wanted],
        )
        self.db.add(project)
        await self.db.commit()

        logger.info(
            "projecthub.projects.created",
            project_id=str(project.id),
            tenant_id=str(identity.tenant_id),
            members=len(wanted),
        )
        # Reload with member users attached for the response
        return await self.get_project(project.id, identity)
