from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import SQLAlchemyError
from oncoshare.config import get_settings
from oncoshare.database import engine, Base, async_session
from oncoshare.enums import Role
from oncoshare.exceptions import PlatformError
from oncoshare.logging_config import configure_logging
from oncoshare.passwords import hash_password
from oncoshare.routers import categories, comments, documents, users, videos
from oncoshare.routers import auth as auth_router
from oncoshare.services.credential_store import credential_store

settings = get_settings()


async def seed_admin():
    """Create the bootstrap administrator from ADMIN_EMAIL/ADMIN_PASSWORD. Idempotent."""
    if not (settings.admin_email and settings.admin_password):
        return
    async with async_session() as session:
        existing = await credential_store.get_by_email(session, settings.admin_email)
        if existing:
            return
        hashed = await run_in_threadpool(hash_password, settings.admin_password)
        user = await credential_store.create(
            session,
            username=settings.admin_username,
            email=settings.admin_email,
            password_hash=hashed,
            full_name="Administrator",
        )
        await credential_store.set_role(session, user, Role.ADMIN)
        await session.commit()
        logger.info(f"Seeded administrator account {user.id}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    missing = settings.missing_storage_config()
    if missing:
        logger.warning(
            f"Object storage is not configured (missing {', '.join(missing)}). "
            "Uploads and file removal will fail until these are set."
        )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await seed_admin()
    yield
    await engine.dispose()


app = FastAPI(
    title="OncoShare",
    description="Cancer education library: documents, videos, review and moderation",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class NoCacheMiddleware(BaseHTTPMiddleware):
    """Middleware to add no-cache headers to prevent browser caching."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, proxy-revalidate, max-age=0"
        response.headers["Expires"] = "0"
        response.headers["Pragma"] = "no-cache"
        return response


app.add_middleware(NoCacheMiddleware)


@app.exception_handler(PlatformError)
async def platform_error_handler(request: Request, exc: PlatformError):
    content = {"detail": exc.message}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": "The database is unavailable, please try again"})


app.include_router(auth_router.router, prefix="/api/auth", tags=["Auth"])
app.include_router(documents.router, prefix="/api/documents", tags=["Documents"])
app.include_router(videos.router, prefix="/api/videos", tags=["Videos"])
app.include_router(categories.router, prefix="/api/categories", tags=["Categories"])
app.include_router(comments.router, prefix="/api/comments", tags=["Moderation"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "service": "oncoshare"}
