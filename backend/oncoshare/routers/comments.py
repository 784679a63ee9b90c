from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from oncoshare.auth import require_admin
from oncoshare.database import get_db
from oncoshare.enums import AuthorType, ContentKind
from oncoshare.schemas.comment import CommentResponse
from oncoshare.services.comment_service import comment_service
from oncoshare.sessions import Session

router = APIRouter()


@router.get("")
async def moderate_comments(
    author_type: Optional[AuthorType] = Query(None, description="registered or guest"),
    kind: Optional[ContentKind] = Query(None, description="document or video"),
    search: str = Query("", description="Search comment text, author and content title"),
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_admin),
):
    comments = await comment_service.moderation_list(
        db, session, author_type=author_type, search=search or None, kind=kind
    )
    return {
        "comments": [CommentResponse.model_validate(c) for c in comments],
        "total": len(comments),
        "guest_total": sum(1 for c in comments if c.author_type is AuthorType.GUEST),
    }


@router.delete("/{kind}/{comment_id}")
async def delete_comment(
    kind: ContentKind,
    comment_id: int,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_admin),
):
    await comment_service.delete_comment(db, session, kind, comment_id)
    return {"deleted": True, "comment_id": comment_id}
