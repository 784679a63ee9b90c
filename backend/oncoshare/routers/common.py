from typing import Optional
from fastapi import UploadFile
from oncoshare.services.content_service import FilePayload


async def read_upload(file: Optional[UploadFile]) -> Optional[FilePayload]:
    if file is None:
        return None
    content = await file.read()
    return FilePayload(filename=file.filename or "file", content=content, content_type=file.content_type)


def to_response(schema, annotated: dict):
    """Build a content response from ContentService.annotate() output."""
    response = schema.model_validate(annotated["item"])
    response.category_name = annotated["category_name"]
    response.author_name = annotated["author_name"]
    response.comment_count = annotated["comment_count"]
    return response
