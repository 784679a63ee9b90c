from typing import Optional
from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from oncoshare.auth import get_optional_session, require_session
from oncoshare.database import get_db
from oncoshare.exceptions import ValidationFailed
from oncoshare.routers.common import read_upload
from oncoshare.schemas.user import (
    LoginRequest, PasswordChange, ProfileUpdate, RegisterRequest, SessionProfile, SessionResponse,
)
from oncoshare.services.session_manager import SessionManager
from oncoshare.services.storage_service import object_key, storage_service
from oncoshare.sessions import Session

router = APIRouter()


def _manager_for(session: Optional[Session]) -> SessionManager:
    manager = SessionManager()
    manager.session = session
    manager.loading = False
    return manager


def _session_response(session: Session) -> SessionResponse:
    return SessionResponse(access_token=session.token, user=SessionProfile.model_validate(session))


@router.post("/register", response_model=SessionResponse, status_code=201)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    session = await SessionManager().register(
        db,
        email=body.email,
        password=body.password,
        full_name=body.full_name,
        username=body.username,
        avatar_url=body.avatar_url,
    )
    return _session_response(session)


@router.post("/login", response_model=SessionResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    session = await SessionManager().login(db, body.email, body.password)
    return _session_response(session)


@router.post("/logout")
async def logout(
    db: AsyncSession = Depends(get_db),
    session: Optional[Session] = Depends(get_optional_session),
):
    await _manager_for(session).logout(db)
    return {"logged_out": True}


@router.get("/me", response_model=SessionProfile)
async def me(session: Session = Depends(require_session)):
    return SessionProfile.model_validate(session)


@router.put("/profile", response_model=SessionProfile)
async def update_profile(
    body: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    updated = await _manager_for(session).update_profile(db, body.model_dump(exclude_unset=True))
    return SessionProfile.model_validate(updated)


@router.put("/password")
async def update_password(
    body: PasswordChange,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    await _manager_for(session).update_password(db, body.current_password, body.new_password)
    return {"updated": True}


@router.post("/avatar", response_model=SessionProfile)
async def upload_avatar(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    payload = await read_upload(file)
    if payload is None or not payload.content:
        raise ValidationFailed("Please choose an image first")
    avatar_url = await storage_service.upload(
        object_key(session.id, "avatars", payload.filename), payload.content, payload.content_type
    )
    updated = await _manager_for(session).update_profile(db, {"avatar_url": avatar_url})
    return SessionProfile.model_validate(updated)
