from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, ForeignKey
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func
from oncoshare.enums import ContentStatus


class ContentColumns:
    """Columns shared by documents and videos."""

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text)
    # No FK: rows outlive the account that uploaded them
    user_id = Column(Integer, nullable=False, index=True)
    file_url = Column(String(1000), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @declared_attr
    def category_id(cls):
        return Column(Integer, ForeignKey("document_categories.id"), nullable=False, index=True)

    @declared_attr
    def status(cls):
        return Column(
            Enum(ContentStatus, native_enum=False, create_constraint=True, length=20,
                 name=f"{cls.__tablename__}_status",
                 values_callable=lambda statuses: [s.value for s in statuses]),
            nullable=False,
            default=ContentStatus.PENDING,
            index=True,
        )
