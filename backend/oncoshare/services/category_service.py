from typing import Optional
from loguru import logger
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from oncoshare.exceptions import NotFound, Unauthorized, ValidationFailed
from oncoshare.models.category import Category
from oncoshare.models.document import Document
from oncoshare.models.video import Video
from oncoshare.sessions import Session


def _require_admin(session: Optional[Session]) -> None:
    if session is None or not session.is_admin:
        raise Unauthorized("Only administrators can manage categories")


class CategoryService:
    async def counts(self, db: AsyncSession, category_id: int) -> tuple[int, int]:
        documents = await db.scalar(
            select(func.count(Document.id)).where(Document.category_id == category_id)
        ) or 0
        videos = await db.scalar(
            select(func.count(Video.id)).where(Video.category_id == category_id)
        ) or 0
        return documents, videos

    async def list_categories(self, db: AsyncSession) -> list[dict]:
        result = await db.execute(select(Category).order_by(Category.name))
        categories = result.scalars().all()
        listing = []
        for category in categories:
            document_count, video_count = await self.counts(db, category.id)
            listing.append({
                "category": category,
                "document_count": document_count,
                "video_count": video_count,
            })
        return listing

    async def get(self, db: AsyncSession, category_id: int) -> Category:
        category = await db.scalar(select(Category).where(Category.id == category_id))
        if not category:
            raise NotFound("Category not found")
        return category

    async def _check_name(self, db: AsyncSession, name: Optional[str], exclude_id: int = None) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationFailed("Category name is required")
        query = select(Category.id).where(func.lower(Category.name) == name.lower())
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        if await db.scalar(query):
            raise ValidationFailed(f'A category named "{name}" already exists')
        return name

    async def create_category(self, db: AsyncSession, session: Optional[Session], name: str,
                              description: Optional[str] = None) -> Category:
        _require_admin(session)
        name = await self._check_name(db, name)
        category = Category(name=name, description=description or None)
        db.add(category)
        await db.flush()
        await db.refresh(category)
        logger.info(f"Admin {session.id} created category {category.id} ({name})")
        return category

    async def update_category(self, db: AsyncSession, session: Optional[Session], category_id: int,
                              name: Optional[str] = None, description: Optional[str] = None) -> Category:
        _require_admin(session)
        category = await self.get(db, category_id)
        if name is not None:
            category.name = await self._check_name(db, name, exclude_id=category_id)
        if description is not None:
            category.description = description or None
        await db.flush()
        await db.refresh(category)
        return category

    async def delete_category(self, db: AsyncSession, session: Optional[Session], category_id: int) -> None:
        """Refused while any document or video is still assigned to the category."""
        _require_admin(session)
        category = await self.get(db, category_id)
        document_count, video_count = await self.counts(db, category_id)
        if document_count + video_count > 0:
            raise ValidationFailed(
                f'"{category.name}" has {document_count} documents and {video_count} videos. '
                "Please move the content to another category first.",
                {"document_count": document_count, "video_count": video_count},
            )
        await db.delete(category)
        await db.flush()
        logger.info(f"Admin {session.id} deleted category {category_id}")


category_service = CategoryService()
