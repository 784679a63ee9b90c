"""Shared fixtures: a throwaway SQLite database, a recording object store and seeded accounts."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("STORAGE_URL", "https://storage.test")
os.environ.setdefault("STORAGE_KEY", "test-service-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from oncoshare.auth import create_token
from oncoshare.database import Base, get_db
from oncoshare.enums import ContentStatus, Role
from oncoshare.exceptions import UpstreamFailure
from oncoshare.models import Category, Document, Video
from oncoshare.passwords import hash_password
from oncoshare.routers import auth as auth_router
from oncoshare.services.content_service import document_service, video_service
from oncoshare.services.credential_store import credential_store
from oncoshare.services.deletion_service import deletion_coordinator
from oncoshare.services.storage_service import StorageService
from oncoshare.sessions import Session

DEFAULT_PASSWORD = "secret123"


class FakeStorage(StorageService):
    """Object store double. Keeps objects in a dict and records every call."""

    def __init__(self):
        super().__init__(base_url="https://storage.test", api_key="test-service-key", bucket="T2T")
        self.objects = {}
        self.uploads = []
        self.removals = []
        self.fail_uploads = False
        self.fail_removals = False

    async def upload(self, path, content, content_type=None):
        if self.fail_uploads:
            raise UpstreamFailure("File upload failed", {"path": path})
        self.uploads.append(path)
        self.objects[path] = content
        return self.public_url(path)

    async def remove(self, paths):
        self.removals.append(list(paths))
        if self.fail_removals:
            raise UpstreamFailure("File removal failed", {"paths": paths})
        for path in paths:
            self.objects.pop(path, None)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'oncoshare.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(monkeypatch):
    fake = FakeStorage()
    monkeypatch.setattr(document_service, "storage", fake)
    monkeypatch.setattr(video_service, "storage", fake)
    monkeypatch.setattr(deletion_coordinator, "storage", fake)
    monkeypatch.setattr(auth_router, "storage_service", fake)
    return fake


@pytest.fixture
def make_user(db):
    async def _make_user(username, role=Role.USER, password=DEFAULT_PASSWORD, **fields):
        user = await credential_store.create(
            db,
            username=username,
            email=f"{username}@example.com",
            password_hash=hash_password(password, rounds=4),
            full_name=fields.pop("full_name", username.title()),
            avatar_url=fields.pop("avatar_url", None),
        )
        if role is not Role.USER:
            user = await credential_store.set_role(db, user, role)
        await db.commit()
        return user
    return _make_user


@pytest_asyncio.fixture
async def user(make_user):
    return await make_user("alice")


@pytest_asyncio.fixture
async def other_user(make_user):
    return await make_user("bob")


@pytest_asyncio.fixture
async def doctor(make_user):
    return await make_user("drhouse", role=Role.DOCTOR)


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user("root", role=Role.ADMIN)


def session_for(user) -> Session:
    return Session.from_user(user, token=create_token(user))


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_token(user)}"}


@pytest_asyncio.fixture
async def category(db):
    category = Category(name="Breast Cancer", description="Screening and treatment")
    db.add(category)
    await db.commit()
    await db.refresh(category)
    return category


@pytest.fixture
def make_document(db, storage):
    async def _make_document(owner, category, title="Screening guide", status=ContentStatus.PENDING, **fields):
        path = f"user_{owner.id}/documents/1700000000000-{title.replace(' ', '_')}.pdf"
        storage.objects[path] = b"%PDF"
        document = Document(
            title=title,
            user_id=owner.id,
            category_id=category.id,
            file_url=storage.public_url(path),
            status=status,
            **fields,
        )
        db.add(document)
        await db.commit()
        await db.refresh(document)
        return document
    return _make_document


@pytest.fixture
def make_video(db, storage):
    async def _make_video(owner, category, title="Living with cancer", status=ContentStatus.PENDING,
                          with_thumbnail=True, **fields):
        slug = title.replace(" ", "_")
        path = f"user_{owner.id}/videos/1700000000000-{slug}.mp4"
        storage.objects[path] = b"video"
        thumbnail_url = None
        if with_thumbnail:
            thumb_path = f"user_{owner.id}/thumbnails/1700000000000-{slug}.jpg"
            storage.objects[thumb_path] = b"jpeg"
            thumbnail_url = storage.public_url(thumb_path)
        video = Video(
            title=title,
            user_id=owner.id,
            category_id=category.id,
            file_url=storage.public_url(path),
            thumbnail_url=thumbnail_url,
            status=status,
            **fields,
        )
        db.add(video)
        await db.commit()
        await db.refresh(video)
        return video
    return _make_video


@pytest_asyncio.fixture
async def client(session_factory, storage):
    from oncoshare.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
