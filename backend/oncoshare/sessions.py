"""
The session object and the client-side stores that persist it.

A session is the sanitized profile of the signed-in user plus the access token
issued at login. It never carries the password hash. Persisted form is a flat
JSON object kept under a single well-known key.
"""

import json
import os
from dataclasses import dataclass, asdict
from typing import Optional
import aiofiles
from oncoshare.enums import Role

SESSION_KEY = "user"


@dataclass
class Session:
    id: int
    username: str
    email: str
    role: Role
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    token: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def display_name(self) -> str:
        return self.full_name or self.username

    def owns(self, user_id: int) -> bool:
        return self.id == user_id

    @classmethod
    def from_user(cls, user, token: str = "") -> "Session":
        """Build a session from a User row, dropping password and timestamps."""
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            role=Role(user.role),
            full_name=user.full_name,
            avatar_url=user.avatar_url,
            bio=user.bio,
            token=token,
        )

    def to_blob(self) -> dict:
        blob = asdict(self)
        blob["role"] = self.role.value
        return blob

    @classmethod
    def from_blob(cls, blob: dict) -> "Session":
        """Raises KeyError/ValueError/TypeError on a malformed blob."""
        return cls(
            id=int(blob["id"]),
            username=blob["username"],
            email=blob["email"],
            role=Role(blob["role"]),
            full_name=blob.get("full_name"),
            avatar_url=blob.get("avatar_url"),
            bio=blob.get("bio"),
            token=blob.get("token", ""),
        )


class MemorySessionStore:
    """Keeps persisted client state in process memory."""

    def __init__(self):
        self._data: dict[str, dict] = {}

    async def read(self, key: str = SESSION_KEY) -> Optional[dict]:
        blob = self._data.get(key)
        return dict(blob) if blob is not None else None

    async def write(self, blob: dict, key: str = SESSION_KEY) -> None:
        self._data[key] = dict(blob)

    async def clear(self, key: str = SESSION_KEY) -> None:
        self._data.pop(key, None)


class FileSessionStore:
    """Keeps persisted client state in a JSON file, one entry per key."""

    def __init__(self, path: str):
        self.path = path

    async def _load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            raw = await f.read()
        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}

    async def _save(self, data: dict) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data))
        os.replace(tmp_path, self.path)

    async def read(self, key: str = SESSION_KEY) -> Optional[dict]:
        data = await self._load()
        blob = data.get(key)
        return blob if isinstance(blob, dict) else None

    async def write(self, blob: dict, key: str = SESSION_KEY) -> None:
        data = await self._load()
        data[key] = blob
        await self._save(data)

    async def clear(self, key: str = SESSION_KEY) -> None:
        data = await self._load()
        if key in data:
            del data[key]
            await self._save(data)
