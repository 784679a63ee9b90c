from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from oncoshare.enums import ContentStatus


class ContentResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    category_id: int
    user_id: int
    status: ContentStatus
    file_url: str
    created_at: Optional[datetime] = None
    category_name: Optional[str] = None
    author_name: Optional[str] = None
    comment_count: int = 0

    class Config:
        from_attributes = True


class DocumentResponse(ContentResponse):
    journal: Optional[str] = None
    year: Optional[int] = None


class VideoResponse(ContentResponse):
    thumbnail_url: Optional[str] = None
    duration: Optional[str] = None


class DocumentUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    journal: Optional[str] = None
    year: Optional[int] = None


class VideoUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[str] = None


class StatusUpdate(BaseModel):
    status: ContentStatus


class DeletionResponse(BaseModel):
    deleted: bool
    kind: str
    item_id: int
    storage_removed: bool
    comments_deleted: int = 0
