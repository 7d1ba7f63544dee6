"""Identity business logic layer."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import RoleEnum
from app.core.security import decode_token, oauth2_scheme
from app.modules.identity.models import User
from app.modules.identity.repository import IdentityRepository
from app.shared.exceptions import UnauthorizedException

# Roles allowed to manage schedules, leave and bookings of their hospital.
STAFF_MANAGER_ROLES = frozenset({RoleEnum.SUPER_ADMIN, RoleEnum.ADMIN, RoleEnum.RECEPTIONIST})
ADMIN_ROLES = frozenset({RoleEnum.SUPER_ADMIN, RoleEnum.ADMIN})


class IdentityService:
    """Identity domain service."""

    def __init__(self, repository: IdentityRepository) -> None:
        self.repository = repository

    async def ensure_default_roles(self) -> None:
        """Ensure all default roles exist."""
        for role_name in RoleEnum:
            role = await self.repository.get_role_by_name(role_name)
            if role is None:
                await self.repository.create_role(role_name)

    async def get_user_from_access_token(self, token: str) -> User:
        """Resolve user from access token."""
        payload = decode_token(token)
        if payload.get("type") != "access":
            raise UnauthorizedException("Invalid access token")

        subject = payload.get("sub")
        if not subject:
            raise UnauthorizedException("Token subject is missing")

        try:
            user_id = UUID(subject)
        except ValueError as exc:
            raise UnauthorizedException("Token subject is malformed") from exc

        user = await self.repository.get_user_by_id(user_id)
        if user is None:
            raise UnauthorizedException("User not found")
        if not user.is_active:
            raise UnauthorizedException("User is inactive")

        return user


def is_super_admin(actor: User) -> bool:
    return actor.role.name == RoleEnum.SUPER_ADMIN


def resolve_hospital_scope(actor: User) -> UUID | None:
    """Return the hospital the actor is limited to, or None for all hospitals."""
    if is_super_admin(actor):
        return None
    if actor.hospital_id is None:
        raise UnauthorizedException("User is not assigned to a hospital")
    return actor.hospital_id


def ensure_hospital_access(actor: User, hospital_id: UUID) -> None:
    """Reject access to records that belong to another hospital."""
    scope = resolve_hospital_scope(actor)
    if scope is not None and scope != hospital_id:
        raise UnauthorizedException("Record belongs to another hospital")


async def get_identity_service(session: AsyncSession = Depends(get_db_session)) -> IdentityService:
    """Dependency to provide identity service."""
    return IdentityService(IdentityRepository(session))


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    service: IdentityService = Depends(get_identity_service),
) -> User:
    """Resolve currently authenticated user from bearer token."""
    return await service.get_user_from_access_token(token)
