from dataclasses import dataclass
from typing import Optional
from loguru import logger
from sqlalchemy import select, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from oncoshare.database import contains_pattern
from oncoshare.enums import ContentKind
from oncoshare.exceptions import NotFound, Unauthorized, UpstreamFailure, ValidationFailed
from oncoshare.models.category import Category
from oncoshare.models.comment import DocumentComment, VideoComment
from oncoshare.models.document import Document
from oncoshare.models.video import Video
from oncoshare.services import content_status
from oncoshare.services.credential_store import credential_store
from oncoshare.services.storage_service import StorageService, object_key, storage_service
from oncoshare.sessions import Session


@dataclass
class FilePayload:
    filename: str
    content: bytes
    content_type: Optional[str] = None


CONTENT_MODELS = {
    ContentKind.DOCUMENT: Document,
    ContentKind.VIDEO: Video,
}

COMMENT_MODELS = {
    ContentKind.DOCUMENT: (DocumentComment, DocumentComment.document_id),
    ContentKind.VIDEO: (VideoComment, VideoComment.video_id),
}


class ContentService:
    """Upload, browse and edit one kind of content item."""

    def __init__(self, kind: ContentKind, storage: StorageService = storage_service):
        self.kind = kind
        self.model = CONTENT_MODELS[kind]
        self.storage = storage
        self.folder = f"{kind.value}s"
        self.editable_fields = content_status.EDITABLE_FIELDS[kind.value]

    @property
    def label(self) -> str:
        return self.kind.value.capitalize()

    async def _require_category(self, db: AsyncSession, category_id) -> Category:
        if not category_id:
            raise ValidationFailed("Please select a category")
        category = await db.scalar(select(Category).where(Category.id == int(category_id)))
        if not category:
            raise NotFound(f"Category {category_id} not found")
        return category

    async def upload(
        self,
        db: AsyncSession,
        session: Optional[Session],
        fields: dict,
        file: FilePayload,
        thumbnail: Optional[FilePayload] = None,
    ):
        """Store the file, then create the row. New items always start as pending."""
        if session is None:
            raise Unauthorized(f"Sign in to upload a {self.kind.value}")
        title = (fields.get("title") or "").strip()
        if not title:
            raise ValidationFailed("Title is required")
        await self._require_category(db, fields.get("category_id"))
        if file is None or not file.content:
            raise ValidationFailed("Please choose a file first")

        values = {k: v for k, v in fields.items() if k in self.editable_fields}
        values["title"] = title
        values["category_id"] = int(fields["category_id"])

        uploaded_paths = []
        path = object_key(session.id, self.folder, file.filename)
        file_url = await self.storage.upload(path, file.content, file.content_type)
        uploaded_paths.append(path)
        if thumbnail is not None and thumbnail.content and hasattr(self.model, "thumbnail_url"):
            thumb_path = object_key(session.id, "thumbnails", thumbnail.filename)
            try:
                values["thumbnail_url"] = await self.storage.upload(
                    thumb_path, thumbnail.content, thumbnail.content_type
                )
            except UpstreamFailure:
                await self._discard_uploads(uploaded_paths)
                raise
            uploaded_paths.append(thumb_path)

        item = self.model(
            **values,
            user_id=session.id,
            file_url=file_url,
            status=content_status.INITIAL_STATUS,
        )
        db.add(item)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            await self._discard_uploads(uploaded_paths)
            raise UpstreamFailure(f"Could not save {self.kind.value}") from e
        await db.refresh(item)
        logger.info(f"User {session.id} uploaded {self.kind.value} {item.id} (pending review)")
        return item

    async def _discard_uploads(self, paths: list[str]) -> None:
        try:
            await self.storage.remove(paths)
        except UpstreamFailure as e:
            logger.warning(f"Could not remove orphaned upload(s) {paths}: {e}")

    def _filtered_query(self, session, status=None, category_id=None, search=None, owner_id=None):
        query = select(self.model)
        clause = content_status.visibility_clause(self.model, session)
        if clause is not None:
            query = query.where(clause)
        if status:
            query = query.where(self.model.status == content_status.parse_status(status))
        if category_id:
            query = query.where(self.model.category_id == category_id)
        if owner_id:
            query = query.where(self.model.user_id == owner_id)
        if search:
            pattern = contains_pattern(search)
            query = query.where(
                or_(
                    self.model.title.ilike(pattern, escape="\\"),
                    self.model.description.ilike(pattern, escape="\\"),
                )
            )
        return query

    async def list_items(
        self,
        db: AsyncSession,
        session: Optional[Session],
        status=None,
        category_id: int = None,
        search: str = None,
        owner_id: int = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list, int]:
        query = self._filtered_query(session, status, category_id, search, owner_id)
        total = await db.scalar(select(func.count()).select_from(query.subquery())) or 0
        query = (
            query.order_by(self.model.created_at.desc(), self.model.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def get(self, db: AsyncSession, session: Optional[Session], item_id: int):
        item = await db.scalar(select(self.model).where(self.model.id == item_id))
        if not item or not content_status.can_view(item, session):
            raise NotFound(f"{self.label} not found")
        return item

    async def update_metadata(self, db: AsyncSession, session: Optional[Session], item_id: int,
                              updates: dict):
        """Owner/admin edit of non-status fields. The review status is left untouched."""
        item = await self.get(db, session, item_id)
        if not content_status.can_edit(item, session):
            raise Unauthorized(f"You can only edit your own {self.kind.value}s")

        values = {k: v for k, v in updates.items() if k in self.editable_fields and v is not None}
        if "title" in values:
            values["title"] = values["title"].strip()
            if not values["title"]:
                raise ValidationFailed("Title is required")
        if "category_id" in values:
            await self._require_category(db, values["category_id"])

        for key, value in values.items():
            setattr(item, key, value)
        await db.flush()
        await db.refresh(item)
        return item

    async def set_status(self, db: AsyncSession, session: Optional[Session], item_id: int, status):
        if session is None or not session.is_admin:
            raise Unauthorized("Only administrators can change content status")
        item = await db.scalar(select(self.model).where(self.model.id == item_id))
        if not item:
            raise NotFound(f"{self.label} not found")
        if content_status.apply_transition(item, status, session):
            await db.flush()
            await db.refresh(item)
        return item

    async def annotate(self, db: AsyncSession, items: list) -> list[dict]:
        """Attach category name, author name and comment count to each item."""
        if not items:
            return []
        category_ids = {i.category_id for i in items}
        result = await db.execute(select(Category.id, Category.name).where(Category.id.in_(category_ids)))
        categories = dict(result.all())
        authors = await credential_store.get_many(db, [i.user_id for i in items])

        comment_model, fk = COMMENT_MODELS[self.kind]
        result = await db.execute(
            select(fk, func.count(comment_model.id))
            .where(fk.in_([i.id for i in items]))
            .group_by(fk)
        )
        comment_counts = dict(result.all())

        annotated = []
        for item in items:
            author = authors.get(item.user_id)
            annotated.append({
                "item": item,
                "category_name": categories.get(item.category_id),
                "author_name": (author.full_name or author.username) if author else None,
                "comment_count": comment_counts.get(item.id, 0),
            })
        return annotated


document_service = ContentService(ContentKind.DOCUMENT)
video_service = ContentService(ContentKind.VIDEO)


def content_service_for(kind: ContentKind) -> ContentService:
    return document_service if kind is ContentKind.DOCUMENT else video_service
