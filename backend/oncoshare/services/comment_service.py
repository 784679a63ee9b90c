from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from oncoshare.enums import AuthorType, ContentKind, ContentStatus, GuestRole
from oncoshare.exceptions import NotFound, Unauthorized, ValidationFailed
from oncoshare.services.content_service import COMMENT_MODELS, CONTENT_MODELS, content_service_for
from oncoshare.services.credential_store import CredentialStore, credential_store
from oncoshare.sessions import Session

UNKNOWN_AUTHOR = "Unknown"


@dataclass
class CommentView:
    id: int
    kind: ContentKind
    content_id: int
    comment: str
    author_name: str
    author_type: AuthorType
    author_role: Optional[str]
    user_id: Optional[int]
    guest_name: Optional[str]
    guest_role: Optional[str]
    created_at: Optional[datetime]
    content_title: Optional[str] = None


class CommentService:
    def __init__(self, credentials: CredentialStore = credential_store):
        self.credentials = credentials

    async def _commentable_target(self, db: AsyncSession, kind: ContentKind, content_id: int):
        model = CONTENT_MODELS[kind]
        item = await db.scalar(select(model).where(model.id == content_id))
        if not item or ContentStatus(item.status) != ContentStatus.VERIFIED:
            raise NotFound(f"{kind.value.capitalize()} not found")
        return item

    @staticmethod
    def _clean_text(text: Optional[str]) -> str:
        text = (text or "").strip()
        if not text:
            raise ValidationFailed("Comment text is required")
        return text

    def _new_comment(self, kind: ContentKind, content_id: int, **values):
        comment_model, fk = COMMENT_MODELS[kind]
        return comment_model(**{fk.key: content_id}, **values)

    async def add_comment(self, db: AsyncSession, session: Optional[Session], kind: ContentKind,
                          content_id: int, text: str) -> CommentView:
        """Registered comment: user reference set, guest fields left empty."""
        if session is None:
            raise Unauthorized("Sign in to comment")
        text = self._clean_text(text)
        item = await self._commentable_target(db, kind, content_id)

        comment = self._new_comment(kind, content_id, user_id=session.id, comment=text)
        db.add(comment)
        await db.flush()
        await db.refresh(comment)
        users = await self.credentials.get_many(db, [session.id])
        return self._view(kind, comment, users, {item.id: item.title})

    async def add_guest_comment(self, db: AsyncSession, kind: ContentKind, content_id: int,
                                guest_name: str, guest_role, text: str) -> CommentView:
        """Guest comment: display name and role tag set, no user reference."""
        guest_name = (guest_name or "").strip()
        if not guest_name:
            raise ValidationFailed("Please enter your name")
        try:
            guest_role = GuestRole(guest_role)
        except ValueError:
            raise ValidationFailed("Guest role must be 'doctor' or 'user'")
        text = self._clean_text(text)
        item = await self._commentable_target(db, kind, content_id)

        comment = self._new_comment(
            kind, content_id,
            user_id=None, guest_name=guest_name, guest_role=guest_role, comment=text,
        )
        db.add(comment)
        await db.flush()
        await db.refresh(comment)
        return self._view(kind, comment, {}, {item.id: item.title})

    def _view(self, kind: ContentKind, comment, users: dict, titles: dict = None) -> CommentView:
        _, fk = COMMENT_MODELS[kind]
        content_id = getattr(comment, fk.key)
        if comment.user_id is not None:
            user = users.get(comment.user_id)
            author_name = (user.full_name or user.username) if user else UNKNOWN_AUTHOR
            author_type = AuthorType.REGISTERED
            author_role = user.role.value if user else None
        else:
            author_name = comment.guest_name
            author_type = AuthorType.GUEST
            author_role = comment.guest_role.value if comment.guest_role else None
        return CommentView(
            id=comment.id,
            kind=kind,
            content_id=content_id,
            comment=comment.comment,
            author_name=author_name,
            author_type=author_type,
            author_role=author_role,
            user_id=comment.user_id,
            guest_name=comment.guest_name,
            guest_role=comment.guest_role.value if comment.guest_role else None,
            created_at=comment.created_at,
            content_title=(titles or {}).get(content_id),
        )

    async def list_for_content(self, db: AsyncSession, session: Optional[Session], kind: ContentKind,
                               content_id: int) -> list[CommentView]:
        item = await content_service_for(kind).get(db, session, content_id)
        comment_model, fk = COMMENT_MODELS[kind]
        result = await db.execute(
            select(comment_model)
            .where(fk == content_id)
            .order_by(comment_model.created_at.asc(), comment_model.id.asc())
        )
        comments = result.scalars().all()
        users = await self.credentials.get_many(db, [c.user_id for c in comments])
        return [self._view(kind, c, users, {item.id: item.title}) for c in comments]

    async def moderation_list(
        self,
        db: AsyncSession,
        session: Optional[Session],
        author_type: Optional[AuthorType] = None,
        search: Optional[str] = None,
        kind: Optional[ContentKind] = None,
    ) -> list[CommentView]:
        """All comments for administrators, newest first, with optional filters."""
        if session is None or not session.is_admin:
            raise Unauthorized("Only administrators can moderate comments")

        views = []
        kinds = [kind] if kind else list(ContentKind)
        for k in kinds:
            comment_model, fk = COMMENT_MODELS[k]
            query = select(comment_model)
            if author_type is AuthorType.REGISTERED:
                query = query.where(comment_model.user_id.is_not(None))
            elif author_type is AuthorType.GUEST:
                query = query.where(comment_model.guest_name.is_not(None))
            comments = (await db.execute(query)).scalars().all()
            if not comments:
                continue

            content_model = CONTENT_MODELS[k]
            result = await db.execute(
                select(content_model.id, content_model.title)
                .where(content_model.id.in_({getattr(c, fk.key) for c in comments}))
            )
            titles = dict(result.all())
            users = await self.credentials.get_many(db, [c.user_id for c in comments])
            views.extend(self._view(k, c, users, titles) for c in comments)

        if search:
            needle = search.strip().lower()
            views = [
                v for v in views
                if needle in v.comment.lower()
                or needle in (v.author_name or "").lower()
                or needle in (v.content_title or "").lower()
            ]
        views.sort(key=lambda v: (v.created_at is not None, v.created_at, v.id), reverse=True)
        return views

    async def delete_comment(self, db: AsyncSession, session: Optional[Session], kind: ContentKind,
                             comment_id: int) -> None:
        if session is None or not session.is_admin:
            raise Unauthorized("Only administrators can delete comments")
        comment_model, _ = COMMENT_MODELS[kind]
        comment = await db.scalar(select(comment_model).where(comment_model.id == comment_id))
        if not comment:
            raise NotFound("Comment not found")
        await db.delete(comment)
        await db.flush()
        logger.info(f"Admin {session.id} deleted {kind.value} comment {comment_id}")


comment_service = CommentService()
