from typing import Optional
from loguru import logger
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from oncoshare.database import contains_pattern
from oncoshare.enums import Role
from oncoshare.exceptions import NotFound, Unauthorized, ValidationFailed
from oncoshare.models.user import User
from oncoshare.services.credential_store import CredentialStore, credential_store
from oncoshare.sessions import Session


def _require_admin(session: Optional[Session]) -> None:
    if session is None or not session.is_admin:
        raise Unauthorized("Only administrators can manage users")


class UserAdminService:
    def __init__(self, credentials: CredentialStore = credential_store):
        self.credentials = credentials

    async def list_users(self, db: AsyncSession, session: Optional[Session], role: Optional[Role] = None,
                         search: Optional[str] = None) -> list[User]:
        _require_admin(session)
        query = select(User)
        if role is not None:
            query = query.where(User.role == role)
        if search:
            pattern = contains_pattern(search)
            query = query.where(
                or_(
                    User.username.ilike(pattern, escape="\\"),
                    User.email.ilike(pattern, escape="\\"),
                    User.full_name.ilike(pattern, escape="\\"),
                )
            )
        result = await db.execute(query.order_by(User.created_at.desc(), User.id.desc()))
        return list(result.scalars().all())

    async def change_role(self, db: AsyncSession, session: Optional[Session], user_id: int, role) -> User:
        _require_admin(session)
        try:
            role = Role(role)
        except ValueError:
            raise ValidationFailed(f"Unknown role '{role}'")
        if session.owns(user_id) and role is not Role.ADMIN:
            raise ValidationFailed("Administrators cannot remove their own admin role")
        user = await self.credentials.get_by_id(db, user_id)
        if not user:
            raise NotFound("User not found")
        previous = Role(user.role)
        user = await self.credentials.set_role(db, user, role)
        logger.info(f"Admin {session.id} changed role of user {user_id}: {previous.value} -> {role.value}")
        return user


user_admin_service = UserAdminService()
