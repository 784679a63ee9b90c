from sqlalchemy import Column, String
from oncoshare.database import Base
from oncoshare.models.content import ContentColumns


class Video(ContentColumns, Base):
    __tablename__ = "videos"

    thumbnail_url = Column(String(1000))
    duration = Column(String(20))
