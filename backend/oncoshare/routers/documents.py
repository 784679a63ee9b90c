from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from oncoshare.auth import get_optional_session, require_admin, require_session
from oncoshare.database import get_db
from oncoshare.enums import ContentKind, ContentStatus
from oncoshare.routers.common import read_upload, to_response
from oncoshare.schemas.comment import CommentCreate, CommentResponse, GuestCommentCreate
from oncoshare.schemas.content import DeletionResponse, DocumentResponse, DocumentUpdate, StatusUpdate
from oncoshare.services.comment_service import comment_service
from oncoshare.services.content_service import document_service
from oncoshare.services.deletion_service import deletion_coordinator
from oncoshare.sessions import Session

router = APIRouter()


async def _one(db: AsyncSession, doc) -> DocumentResponse:
    annotated = await document_service.annotate(db, [doc])
    return to_response(DocumentResponse, annotated[0])


@router.get("")
async def list_documents(
    status: Optional[ContentStatus] = Query(None),
    category_id: Optional[int] = Query(None),
    search: str = Query("", description="Search title and description"),
    mine: bool = Query(False, description="Only documents uploaded by the caller"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    session: Optional[Session] = Depends(get_optional_session),
):
    owner_id = session.id if (mine and session) else None
    docs, total = await document_service.list_items(
        db, session,
        status=status, category_id=category_id, search=search or None, owner_id=owner_id,
        page=page, page_size=page_size,
    )
    annotated = await document_service.annotate(db, docs)
    return {
        "documents": [to_response(DocumentResponse, a) for a in annotated],
        "total": total,
        "page": page,
        "page_size": page_size,
    }


@router.post("", response_model=DocumentResponse, status_code=201)
async def upload_document(
    title: str = Form(...),
    category_id: int = Form(...),
    description: str = Form(""),
    journal: Optional[str] = Form(None),
    year: Optional[int] = Form(None),
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    fields = {
        "title": title,
        "category_id": category_id,
        "description": description or None,
        "journal": journal,
        "year": year,
    }
    doc = await document_service.upload(db, session, fields, await read_upload(file))
    return await _one(db, doc)


@router.get("/{doc_id}", response_model=DocumentResponse)
async def get_document(
    doc_id: int,
    db: AsyncSession = Depends(get_db),
    session: Optional[Session] = Depends(get_optional_session),
):
    doc = await document_service.get(db, session, doc_id)
    return await _one(db, doc)


@router.put("/{doc_id}", response_model=DocumentResponse)
async def update_document(
    doc_id: int,
    data: DocumentUpdate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    doc = await document_service.update_metadata(db, session, doc_id, data.model_dump(exclude_unset=True))
    return await _one(db, doc)


@router.put("/{doc_id}/status", response_model=DocumentResponse)
async def update_document_status(
    doc_id: int,
    data: StatusUpdate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_admin),
):
    doc = await document_service.set_status(db, session, doc_id, data.status)
    return await _one(db, doc)


@router.delete("/{doc_id}", response_model=DeletionResponse)
async def delete_document(
    doc_id: int,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    report = await deletion_coordinator.delete_document(db, session, doc_id)
    return DeletionResponse(**{k: getattr(report, k) for k in DeletionResponse.model_fields})


@router.get("/{doc_id}/comments")
async def list_document_comments(
    doc_id: int,
    db: AsyncSession = Depends(get_db),
    session: Optional[Session] = Depends(get_optional_session),
):
    comments = await comment_service.list_for_content(db, session, ContentKind.DOCUMENT, doc_id)
    return {"comments": [CommentResponse.model_validate(c) for c in comments], "total": len(comments)}


@router.post("/{doc_id}/comments", response_model=CommentResponse, status_code=201)
async def add_document_comment(
    doc_id: int,
    data: CommentCreate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    view = await comment_service.add_comment(db, session, ContentKind.DOCUMENT, doc_id, data.comment)
    return CommentResponse.model_validate(view)


@router.post("/{doc_id}/comments/guest", response_model=CommentResponse, status_code=201)
async def add_document_guest_comment(
    doc_id: int,
    data: GuestCommentCreate,
    db: AsyncSession = Depends(get_db),
):
    view = await comment_service.add_guest_comment(
        db, ContentKind.DOCUMENT, doc_id, data.guest_name, data.guest_role, data.comment
    )
    return CommentResponse.model_validate(view)
