from sqlalchemy import Column, Integer, String
from oncoshare.database import Base
from oncoshare.models.content import ContentColumns


class Document(ContentColumns, Base):
    __tablename__ = "documents"

    journal = Column(String(300))
    year = Column(Integer)
