from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from oncoshare.auth import get_optional_session, require_admin, require_session
from oncoshare.database import get_db
from oncoshare.enums import ContentKind, ContentStatus
from oncoshare.routers.common import read_upload, to_response
from oncoshare.schemas.comment import CommentCreate, CommentResponse, GuestCommentCreate
from oncoshare.schemas.content import DeletionResponse, VideoResponse, VideoUpdate, StatusUpdate
from oncoshare.services.comment_service import comment_service
from oncoshare.services.content_service import video_service
from oncoshare.services.deletion_service import deletion_coordinator
from oncoshare.sessions import Session

router = APIRouter()


async def _one(db: AsyncSession, video) -> VideoResponse:
    annotated = await video_service.annotate(db, [video])
    return to_response(VideoResponse, annotated[0])


@router.get("")
async def list_videos(
    status: Optional[ContentStatus] = Query(None),
    category_id: Optional[int] = Query(None),
    search: str = Query("", description="Search title and description"),
    mine: bool = Query(False, description="Only videos uploaded by the caller"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    session: Optional[Session] = Depends(get_optional_session),
):
    owner_id = session.id if (mine and session) else None
    videos, total = await video_service.list_items(
        db, session,
        status=status, category_id=category_id, search=search or None, owner_id=owner_id,
        page=page, page_size=page_size,
    )
    annotated = await video_service.annotate(db, videos)
    return {
        "videos": [to_response(VideoResponse, a) for a in annotated],
        "total": total,
        "page": page,
        "page_size": page_size,
    }


@router.post("", response_model=VideoResponse, status_code=201)
async def upload_video(
    title: str = Form(...),
    category_id: int = Form(...),
    description: str = Form(""),
    duration: Optional[str] = Form(None),
    file: UploadFile = File(...),
    thumbnail: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    fields = {
        "title": title,
        "category_id": category_id,
        "description": description or None,
        "duration": duration,
    }
    video = await video_service.upload(
        db, session, fields, await read_upload(file), thumbnail=await read_upload(thumbnail)
    )
    return await _one(db, video)


@router.get("/{video_id}", response_model=VideoResponse)
async def get_video(
    video_id: int,
    db: AsyncSession = Depends(get_db),
    session: Optional[Session] = Depends(get_optional_session),
):
    video = await video_service.get(db, session, video_id)
    return await _one(db, video)


@router.put("/{video_id}", response_model=VideoResponse)
async def update_video(
    video_id: int,
    data: VideoUpdate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    video = await video_service.update_metadata(db, session, video_id, data.model_dump(exclude_unset=True))
    return await _one(db, video)


@router.put("/{video_id}/status", response_model=VideoResponse)
async def update_video_status(
    video_id: int,
    data: StatusUpdate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_admin),
):
    video = await video_service.set_status(db, session, video_id, data.status)
    return await _one(db, video)


@router.delete("/{video_id}", response_model=DeletionResponse)
async def delete_video(
    video_id: int,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    report = await deletion_coordinator.delete_video(db, session, video_id)
    return DeletionResponse(**{k: getattr(report, k) for k in DeletionResponse.model_fields})


@router.get("/{video_id}/comments")
async def list_video_comments(
    video_id: int,
    db: AsyncSession = Depends(get_db),
    session: Optional[Session] = Depends(get_optional_session),
):
    comments = await comment_service.list_for_content(db, session, ContentKind.VIDEO, video_id)
    return {"comments": [CommentResponse.model_validate(c) for c in comments], "total": len(comments)}


@router.post("/{video_id}/comments", response_model=CommentResponse, status_code=201)
async def add_video_comment(
    video_id: int,
    data: CommentCreate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    view = await comment_service.add_comment(db, session, ContentKind.VIDEO, video_id, data.comment)
    return CommentResponse.model_validate(view)


@router.post("/{video_id}/comments/guest", response_model=CommentResponse, status_code=201)
async def add_video_guest_comment(
    video_id: int,
    data: GuestCommentCreate,
    db: AsyncSession = Depends(get_db),
):
    view = await comment_service.add_guest_comment(
        db, ContentKind.VIDEO, video_id, data.guest_name, data.guest_role, data.comment
    )
    return CommentResponse.model_validate(view)
