"""User service — profiles and company user listings."""

import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from projecthub.auth.dependencies import CurrentIdentity
from projecthub.db.models import User
from projecthub.errors import ForbiddenError, NotFoundError

logger = structlog.get_logger()


def profile_payload(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.display_name,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "role": user.role,
        "tenant_id": user.tenant_id,
        "company_name": user.tenant.name if user.tenant else None,
    }


def _clean_name(value: Optional[str]) -> Optional[str]:
    """Trim a name; blank means "clear it"."""
    if value is None:
        return None
    return value.strip() or None


class UserService:
    """Business logic for user profiles."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: uuid.UUID) -> User:
        result = await self.db.execute(
            select(User)
            .where(User.id == user_id)
            .options(selectinload(User.tenant))
            .execution_options(populate_existing=True)
        )
        user = result.scalars().first()
        if not user:
            raise NotFoundError("User not found")
        return user

    async def update_profile(
        self,
        identity: CurrentIdentity,
        fields: dict,
    ) -> User:
        """Apply a partial profile update.

        Learn: `fields` holds only the keys the client actually sent
        (model_dump(exclude_unset=True)), so an omitted name is left alone
        while an explicit empty one is cleared. Only admins may rename
        their company.
        """
        if fields.get("company_name") and not identity.is_admin:
            raise ForbiddenError("Only company admins can edit company name")

        user = await self.get_user(identity.user_id)

        if "first_name" in fields:
            user.first_name = _clean_name(fields["first_name"])
        if "last_name" in fields:
            user.last_name = _clean_name(fields["last_name"])

        company_name = fields.get("company_name")
        if company_name and user.tenant is not None:
            user.tenant.name = company_name.strip() or user.tenant.name

        await self.db.commit()
        logger.info(
            "projecthub.users.profile_updated",
            user_id=str(user.id),
            fields=sorted(fields),
        )
        return await self.get_user(user.id)

    async def list_company_users(self, tenant_id: uuid.UUID) -> list[User]:
        result = await self.db.execute(
            select(User)
            .where(User.tenant_id == tenant_id)
            .order_by(User.created_at.desc())
        )
        return list(result.scalars().all())
