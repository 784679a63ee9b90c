"""Credential store adapter: user records by email or id over the relational store."""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from oncoshare.enums import Role
from oncoshare.exceptions import ValidationFailed, UpstreamFailure
from oncoshare.models.user import User

PROFILE_FIELDS = ("username", "email", "full_name", "avatar_url", "bio")


class CredentialStore:
    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def get_by_id(self, db: AsyncSession, user_id: int) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_many(self, db: AsyncSession, user_ids) -> dict[int, User]:
        ids = {uid for uid in user_ids if uid is not None}
        if not ids:
            return {}
        result = await db.execute(select(User).where(User.id.in_(ids)))
        return {u.id: u for u in result.scalars().all()}

    async def is_taken(self, db: AsyncSession, email: str = None, username: str = None,
                       exclude_id: int = None) -> bool:
        clauses = []
        if email:
            clauses.append(User.email == email.strip().lower())
        if username:
            clauses.append(User.username == username.strip())
        if not clauses:
            return False
        query = select(User.id).where(or_(*clauses))
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        return (await db.scalar(query.limit(1))) is not None

    async def create(
        self,
        db: AsyncSession,
        username: str,
        email: str,
        password_hash: str,
        full_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> User:
        user = User(
            username=username.strip(),
            email=email.strip().lower(),
            password=password_hash,
            full_name=full_name or None,
            avatar_url=avatar_url or None,
            role=Role.USER,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            raise ValidationFailed("Email or username is already registered") from e
        except SQLAlchemyError as e:
            raise UpstreamFailure("Could not create user") from e
        await db.refresh(user)
        return user

    async def update_profile(self, db: AsyncSession, user: User, updates: dict) -> User:
        for key, value in updates.items():
            if key not in PROFILE_FIELDS:
                raise ValueError(f"{key} is not a profile field")
            setattr(user, key, value)
        try:
            await db.flush()
        except IntegrityError as e:
            raise ValidationFailed("Email or username is already registered") from e
        await db.refresh(user)
        return user

    async def get_password_hash(self, db: AsyncSession, user_id: int) -> Optional[str]:
        return await db.scalar(select(User.password).where(User.id == user_id))

    async def set_password_hash(self, db: AsyncSession, user_id: int, password_hash: str) -> None:
        await db.execute(update(User).where(User.id == user_id).values(password=password_hash))
        await db.flush()

    async def touch_last_login(self, db: AsyncSession, user: User) -> None:
        user.last_login = datetime.now(timezone.utc)
        await db.flush()

    async def set_role(self, db: AsyncSession, user: User, role: Role) -> User:
        user.role = role
        await db.flush()
        await db.refresh(user)
        return user

    async def bump_token_version(self, db: AsyncSession, user: User) -> User:
        user.token_version = (user.token_version or 0) + 1
        await db.flush()
        await db.refresh(user)
        return user


credential_store = CredentialStore()
