from oncoshare.models.user import User
from oncoshare.models.category import Category
from oncoshare.models.document import Document
from oncoshare.models.video import Video
from oncoshare.models.comment import VideoComment, DocumentComment

__all__ = ["User", "Category", "Document", "Video", "VideoComment", "DocumentComment"]
