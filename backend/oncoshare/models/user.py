from sqlalchemy import Column, Integer, String, Text, DateTime, Enum
from sqlalchemy.sql import func
from oncoshare.database import Base
from oncoshare.enums import Role


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)  # bcrypt hash, salt embedded
    full_name = Column(String(200))
    avatar_url = Column(String(1000))
    bio = Column(Text)
    role = Column(
        Enum(Role, native_enum=False, create_constraint=True, length=20,
             values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        default=Role.USER,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login = Column(DateTime(timezone=True))
    # Bumped on logout; tokens issued under an older value stop resolving
    token_version = Column(Integer, nullable=False, default=0, server_default="0")
