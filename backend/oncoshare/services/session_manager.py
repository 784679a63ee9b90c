"""
Session manager: owns the single current-session slot, password checks, and
persistence of the session across restarts.

Only login, register and logout write the persisted copy. restore() discards a
persisted copy that can no longer be trusted.
"""

from functools import lru_cache
from typing import Optional
from fastapi.concurrency import run_in_threadpool
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession
from oncoshare.auth import create_token, decode_token, token_matches
from oncoshare.authorization import AccessLevel, Decision, GuardResult, authorize
from oncoshare.config import get_settings
from oncoshare.exceptions import InvalidCredential, NotFound, Unauthorized, ValidationFailed
from oncoshare.passwords import MAX_PASSWORD_BYTES, hash_password, verify_password
from oncoshare.services.credential_store import PROFILE_FIELDS, CredentialStore, credential_store
from oncoshare.sessions import FileSessionStore, MemorySessionStore, Session

LOGIN_FAILED = "Invalid email or password"
MIN_PASSWORD_LENGTH = 6
# Profile fields that may not be cleared
REQUIRED_PROFILE_FIELDS = ("username", "email")


def validate_new_password(password: Optional[str]) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationFailed(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return password


@lru_cache()
def _dummy_hash() -> str:
    return hash_password("no-such-account")


def _verify_unknown_account(password: str) -> bool:
    """Same bcrypt cost as a real check, against a throwaway hash."""
    verify_password(password, _dummy_hash())
    return False


class SessionManager:
    def __init__(self, store=None, credentials: CredentialStore = credential_store):
        self.store = store if store is not None else MemorySessionStore()
        self.credentials = credentials
        self.session: Optional[Session] = None
        self.loading = True
        self._return_to: Optional[str] = None

    @classmethod
    def persistent(cls, path: str = None) -> "SessionManager":
        """A manager whose session survives restarts, kept in SESSION_FILE."""
        return cls(store=FileSessionStore(path or get_settings().session_file))

    async def _establish(self, user) -> Session:
        session = Session.from_user(user, token=create_token(user))
        self.session = session
        self.loading = False
        await self.store.write(session.to_blob())
        return session

    async def login(self, db: AsyncSession, email: str, password: str) -> Session:
        user = await self.credentials.get_by_email(db, email or "")
        if user is None:
            await run_in_threadpool(_verify_unknown_account, password or "")
            logger.debug("Login rejected: unknown account")
            raise InvalidCredential(LOGIN_FAILED)

        ok = await run_in_threadpool(verify_password, password or "", user.password)
        if not ok:
            logger.debug(f"Login rejected for user {user.id}: password mismatch")
            raise InvalidCredential(LOGIN_FAILED)

        await self.credentials.touch_last_login(db, user)
        session = await self._establish(user)
        logger.info(f"User {user.id} signed in")
        return session

    async def register(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        full_name: Optional[str],
        username: str,
        avatar_url: Optional[str] = None,
    ) -> Session:
        email = (email or "").strip().lower()
        username = (username or "").strip()
        if not email or "@" not in email:
            raise ValidationFailed("A valid email is required")
        if not username:
            raise ValidationFailed("Username is required")
        validate_new_password(password)
        if await self.credentials.is_taken(db, email=email, username=username):
            raise ValidationFailed("Email or username is already registered")

        hashed = await run_in_threadpool(hash_password, password)
        user = await self.credentials.create(
            db,
            username=username,
            email=email,
            password_hash=hashed,
            full_name=full_name,
            avatar_url=avatar_url,
        )
        session = await self._establish(user)
        logger.info(f"Registered user {user.id}")
        return session

    async def logout(self, db: AsyncSession = None) -> None:
        """
        Clear the slot and the persisted copy. With a store handle, every token
        issued to the account so far is revoked as well.
        """
        if self.session is not None and db is not None:
            user = await self.credentials.get_by_id(db, self.session.id)
            if user is not None:
                await self.credentials.bump_token_version(db, user)
                logger.info(f"User {user.id} signed out")
        self.session = None
        self.loading = False
        await self.store.clear()

    async def update_profile(self, db: AsyncSession, partial: dict) -> Session:
        """Apply the provided fields. Empty optional fields are cleared."""
        if self.session is None:
            raise Unauthorized("Sign in to update your profile")

        updates = {}
        for key, value in partial.items():
            if key not in PROFILE_FIELDS or value is None:
                continue
            value = value.strip()
            if key in REQUIRED_PROFILE_FIELDS:
                if not value:
                    raise ValidationFailed(f"{key.capitalize()} cannot be empty")
                if key == "email":
                    value = value.lower()
            updates[key] = value or None
        if await self.credentials.is_taken(
            db,
            email=updates.get("email"),
            username=updates.get("username"),
            exclude_id=self.session.id,
        ):
            raise ValidationFailed("Email or username is already registered")

        user = await self.credentials.get_by_id(db, self.session.id)
        if user is None:
            raise NotFound("User not found")
        if updates:
            user = await self.credentials.update_profile(db, user, updates)
        self.session = Session.from_user(user, token=self.session.token)
        return self.session

    async def update_password(self, db: AsyncSession, current_password: str, new_password: str) -> None:
        if self.session is None:
            raise Unauthorized("Sign in to change your password")
        validate_new_password(new_password)

        stored_hash = await self.credentials.get_password_hash(db, self.session.id)
        if stored_hash is None:
            raise NotFound("User not found")
        ok = await run_in_threadpool(verify_password, current_password or "", stored_hash)
        if not ok:
            raise InvalidCredential("Current password is incorrect")

        new_hash = await run_in_threadpool(hash_password, new_password)
        await self.credentials.set_password_hash(db, self.session.id, new_hash)
        logger.info(f"User {self.session.id} changed their password")

    async def restore(self, db: AsyncSession) -> Optional[Session]:
        """Rehydrate the slot from persisted state. Untrusted state is discarded."""
        try:
            blob = await self.store.read()
            if not blob:
                return None
            try:
                cached = Session.from_blob(blob)
            except (KeyError, ValueError, TypeError):
                logger.warning("Discarding malformed persisted session")
                await self.store.clear()
                return None

            claims = decode_token(cached.token)
            if not claims or int(claims["sub"]) != cached.id:
                logger.info("Persisted session expired or invalid; signing out")
                await self.store.clear()
                return None

            user = await self.credentials.get_by_id(db, cached.id)
            if user is None:
                logger.info(f"Persisted session refers to missing user {cached.id}; signing out")
                await self.store.clear()
                return None
            if not token_matches(claims, user):
                logger.info(f"Persisted session for user {user.id} was signed out elsewhere")
                await self.store.clear()
                return None

            self.session = Session.from_user(user, token=cached.token)
            return self.session
        finally:
            self.loading = False

    def guard(self, level: AccessLevel, destination: Optional[str] = None) -> GuardResult:
        result = authorize(self.session, level, loading=self.loading, destination=destination)
        if result.decision is Decision.SIGN_IN and destination:
            self._return_to = destination
        return result

    def pop_return_to(self, default: str = "/") -> str:
        destination = self._return_to or default
        self._return_to = None
        return destination
