"""
Storage-coupled deletion of documents, videos and users.

The database and the object store are not transactional together, so every
deletion runs the same fixed sequence:

1. load the row and check authority,
2. resolve the object keys from the stored URLs,
3. remove the objects (a failure here is logged and absorbed),
4. delete dependent comments, then the row.

An orphaned file can be swept later; a row pointing at nothing breaks every
list and detail view, so the row deletion always proceeds. Object keys are
derived from the stored URLs and removing a missing key succeeds, so running a
deletion again after a partial failure is safe.
"""

from dataclasses import dataclass, field
from typing import Optional
from loguru import logger
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from oncoshare.enums import ContentKind
from oncoshare.exceptions import NotFound, Unauthorized, UpstreamFailure, ValidationFailed
from oncoshare.models.comment import DocumentComment, VideoComment
from oncoshare.models.user import User
from oncoshare.services.content_service import COMMENT_MODELS, CONTENT_MODELS
from oncoshare.services.storage_service import StorageService, storage_service
from oncoshare.sessions import Session


@dataclass
class DeletionReport:
    kind: str
    item_id: int
    deleted: bool = True
    storage_paths: list[str] = field(default_factory=list)
    storage_removed: bool = True
    comments_deleted: int = 0


class DeletionCoordinator:
    def __init__(self, storage: StorageService = storage_service):
        self.storage = storage

    async def _remove_objects(self, paths: list[str], what: str) -> bool:
        if not paths:
            return True
        try:
            await self.storage.remove(paths)
            return True
        except UpstreamFailure as e:
            logger.warning(f"Could not remove storage object(s) {paths} for {what}; deleting row anyway: {e}")
            return False

    async def delete_content(self, db: AsyncSession, session: Optional[Session], kind: ContentKind,
                             item_id: int) -> DeletionReport:
        model = CONTENT_MODELS[kind]
        item = await db.scalar(select(model).where(model.id == item_id))
        if not item:
            raise NotFound(f"{kind.value.capitalize()} not found")
        if session is None or not (session.is_admin or session.owns(item.user_id)):
            raise Unauthorized(f"You are not allowed to delete this {kind.value}")

        urls = [item.file_url, getattr(item, "thumbnail_url", None)]
        paths = [p for p in (self.storage.path_from_url(u) for u in urls) if p]
        what = f"{kind.value} {item_id}"
        storage_removed = await self._remove_objects(paths, what)

        comment_model, fk = COMMENT_MODELS[kind]
        result = await db.execute(delete(comment_model).where(fk == item_id))
        comments_deleted = result.rowcount or 0
        await db.delete(item)
        await db.flush()

        logger.info(f"Deleted {what} ({comments_deleted} comment(s)) by user {session.id}")
        return DeletionReport(
            kind=kind.value,
            item_id=item_id,
            storage_paths=paths,
            storage_removed=storage_removed,
            comments_deleted=comments_deleted,
        )

    async def delete_document(self, db: AsyncSession, session: Optional[Session], document_id: int) -> DeletionReport:
        return await self.delete_content(db, session, ContentKind.DOCUMENT, document_id)

    async def delete_video(self, db: AsyncSession, session: Optional[Session], video_id: int) -> DeletionReport:
        return await self.delete_content(db, session, ContentKind.VIDEO, video_id)

    async def delete_user(self, db: AsyncSession, session: Optional[Session], user_id: int) -> DeletionReport:
        """
        Remove an account, its avatar object and its comments. Documents and
        videos it uploaded stay published under the original user id.
        """
        if session is None or not session.is_admin:
            raise Unauthorized("Only administrators can delete users")
        if session.owns(user_id):
            raise ValidationFailed("Administrators cannot delete their own account")
        user = await db.scalar(select(User).where(User.id == user_id))
        if not user:
            raise NotFound("User not found")

        path = self.storage.path_from_url(user.avatar_url)
        paths = [path] if path else []
        storage_removed = await self._remove_objects(paths, f"user {user_id}")

        comments_deleted = 0
        for comment_model in (VideoComment, DocumentComment):
            result = await db.execute(delete(comment_model).where(comment_model.user_id == user_id))
            comments_deleted += result.rowcount or 0
        await db.delete(user)
        await db.flush()

        logger.info(f"Deleted user {user_id} ({comments_deleted} comment(s)) by admin {session.id}")
        return DeletionReport(
            kind="user",
            item_id=user_id,
            storage_paths=paths,
            storage_removed=storage_removed,
            comments_deleted=comments_deleted,
        )


deletion_coordinator = DeletionCoordinator()
