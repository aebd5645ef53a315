"""User API routes — own profile and company user list."""

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
from projecthub.schemas.user import CompanyUserRead, ProfileRead, ProfileUpdate
from projecthub.services.user_service import UserService, profile_payload

router = APIRouter(prefix="/users")


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("/profile", response_model=ProfileRead)
async def get_profile(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(_svc),
):
    user = await svc.get_user(identity.user_id)
    return profile_payload(user)


@router.put("/profile", response_model=ProfileRead)
async def update_profile(
    body: ProfileUpdate,
    identity: CurrentIdentity = Depends(guard(require_tenant)),
    svc: UserService = Depends(_svc),
):
    user = await svc.update_profile(identity, body.model_dump(exclude_unset=True))
    return profile_payload(user)


@router.get("/company", response_model=list[CompanyUserRead])
async def list_company_users(
    identity: CurrentIdentity = Depends(guard(require_tenant, require_roles(*ADMIN_ROLES))),
    svc: UserService = Depends(_svc),
):
    users = await svc.list_company_users(identity.tenant_id)
    return [
        {
            "id": u.id,
            "email": u.email,
            "name": u.display_name,
            "first_name": u.first_name,
            "last_name": u.last_name,
            "role": u.role,
            "created_at": u.created_at,
        }
        for u in users
    ]
