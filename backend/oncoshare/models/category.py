from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func
from oncoshare.database import Base


class Category(Base):
    __tablename__ = "document_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), unique=True, nullable=False)
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
