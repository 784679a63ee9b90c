from enum import Enum


class Role(str, Enum):
    USER = "user"
    DOCTOR = "doctor"
    ADMIN = "admin"


class ContentStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class GuestRole(str, Enum):
    DOCTOR = "doctor"
    USER = "user"


class ContentKind(str, Enum):
    DOCUMENT = "document"
    VIDEO = "video"


class AuthorType(str, Enum):
    REGISTERED = "registered"
    GUEST = "guest"
