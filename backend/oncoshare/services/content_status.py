"""
Review status of documents and videos.

pending is the upload state. Administrators may move an item between any two
states; owners may edit other fields but never the status, and such edits
leave the status as it is.
"""

from typing import Optional
from loguru import logger
from sqlalchemy import or_
from oncoshare.enums import ContentStatus
from oncoshare.exceptions import Unauthorized, ValidationFailed
from oncoshare.sessions import Session

INITIAL_STATUS = ContentStatus.PENDING

ALLOWED_TRANSITIONS = {
    ContentStatus.PENDING: {ContentStatus.VERIFIED, ContentStatus.REJECTED},
    ContentStatus.VERIFIED: {ContentStatus.REJECTED, ContentStatus.PENDING},
    ContentStatus.REJECTED: {ContentStatus.VERIFIED, ContentStatus.PENDING},
}

# Fields an owner may change on their own items
EDITABLE_FIELDS = {
    "document": ("title", "description", "category_id", "journal", "year"),
    "video": ("title", "description", "category_id", "thumbnail_url", "duration"),
}


def parse_status(value) -> ContentStatus:
    if isinstance(value, ContentStatus):
        return value
    try:
        return ContentStatus(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in ContentStatus)
        raise ValidationFailed(f"Unknown status '{value}'. Expected one of: {allowed}")


def can_transition(current: ContentStatus, target: ContentStatus) -> bool:
    return current == target or target in ALLOWED_TRANSITIONS[current]


def apply_transition(item, target, session: Optional[Session]) -> bool:
    """
    Set item.status to target. Returns False when the item already had that
    status. Raises Unauthorized for anyone but an administrator.
    """
    if session is None or not session.is_admin:
        raise Unauthorized("Only administrators can change content status")
    target = parse_status(target)
    current = ContentStatus(item.status)
    if not can_transition(current, target):
        raise ValidationFailed(f"Cannot move content from {current.value} to {target.value}")
    if current == target:
        return False
    item.status = target
    logger.info(
        f"{type(item).__name__} {item.id} status {current.value} -> {target.value} "
        f"by admin {session.id}"
    )
    return True


def can_edit(item, session: Optional[Session]) -> bool:
    if session is None:
        return False
    return session.is_admin or session.owns(item.user_id)


def can_view(item, session: Optional[Session]) -> bool:
    if ContentStatus(item.status) == ContentStatus.VERIFIED:
        return True
    if session is None:
        return False
    return session.is_admin or session.owns(item.user_id)


def visibility_clause(model, session: Optional[Session]):
    """SQL filter matching can_view(). None means no restriction."""
    if session is not None and session.is_admin:
        return None
    verified = model.status == ContentStatus.VERIFIED
    if session is None:
        return verified
    return or_(verified, model.user_id == session.id)
