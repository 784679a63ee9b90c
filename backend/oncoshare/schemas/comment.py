from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from oncoshare.enums import AuthorType, ContentKind, GuestRole


class CommentCreate(BaseModel):
    comment: str


class GuestCommentCreate(BaseModel):
    comment: str
    guest_name: str
    guest_role: GuestRole


class CommentResponse(BaseModel):
    id: int
    kind: ContentKind
    content_id: int
    content_title: Optional[str] = None
    comment: str
    author_name: str
    author_type: AuthorType
    author_role: Optional[str] = None
    user_id: Optional[int] = None
    guest_name: Optional[str] = None
    guest_role: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
