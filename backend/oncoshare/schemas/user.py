from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from oncoshare.enums import Role


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: str
    password: str
    username: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None


class ProfileUpdate(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str


class SessionProfile(BaseModel):
    """The user fields a session exposes. Never includes the password hash."""
    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    role: Role

    class Config:
        from_attributes = True


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: SessionProfile


class UserResponse(SessionProfile):
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None


class RoleChange(BaseModel):
    role: Role
