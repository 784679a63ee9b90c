from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, ForeignKey, CheckConstraint
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func
from oncoshare.database import Base
from oncoshare.enums import GuestRole


class CommentColumns:
    """A comment is authored by a registered user or by a named guest, never both."""

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, index=True)
    guest_name = Column(String(200))
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @declared_attr
    def guest_role(cls):
        return Column(
            Enum(GuestRole, native_enum=False, create_constraint=True, length=20,
                 name=f"{cls.__tablename__}_guest_role",
                 values_callable=lambda roles: [r.value for r in roles]),
        )

    @declared_attr
    def __table_args__(cls):
        return (
            CheckConstraint(
                "(user_id IS NULL) <> (guest_name IS NULL)",
                name=f"{cls.__tablename__}_single_author",
            ),
        )


class VideoComment(CommentColumns, Base):
    __tablename__ = "video_comments"

    video_id = Column(Integer, ForeignKey("videos.id"), nullable=False, index=True)


class DocumentComment(CommentColumns, Base):
    __tablename__ = "document_comments"

    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False, index=True)
