"""Template service — read-only lookup of global and tenant templates."""

import uuid

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from projecthub.auth.dependencies import CurrentIdentity
from projecthub.db.models import Template
from projecthub.errors import ForbiddenError, NotFoundError


class TemplateService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_templates(self, identity: CurrentIdentity) -> list[Template]:
        """Global templates plus the caller's tenant templates, by name."""
        visible = Template.is_global.is_(True)
        if identity.tenant_id is not None:
            visible = or_(visible, Template.tenant_id == identity.tenant_id)

        result = await self.db.execute(
            select(Template).where(visible).order_by(Template.name)
        )
        return list(result.scalars().all())

    async def get_template(
        self, template_id: uuid.UUID, identity: CurrentIdentity
    ) -> Template:
        template = await self.db.get(Template, template_id)
        if not template:
            raise NotFoundError("Template not found")

        if not template.is_global and (
            identity.tenant_id is None or template.tenant_id != identity.tenant_id
        ):
            raise ForbiddenError("Access denied")

        return template
