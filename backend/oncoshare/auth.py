"""
Auth module: access-token creation/validation and the FastAPI dependencies that
resolve the caller's session and apply the role guard.

Tokens carry only the user id, role and token version with an expiry. The
profile attached to a request is always re-read from the credential store, so
role changes, logouts and account deletions take effect on the next request.
"""

import time
from typing import Optional
from jose import jwt, JWTError
from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from oncoshare.authorization import AccessLevel, Decision, GuardResult, authorize
from oncoshare.config import get_settings
from oncoshare.database import get_db
from oncoshare.services.credential_store import credential_store
from oncoshare.sessions import Session

ALGORITHM = "HS256"


def create_token(user) -> str:
    """Create a signed, expiring token for the given User model instance."""
    settings = get_settings()
    payload = {
        "sub": str(user.id),
        "role": getattr(user.role, "value", user.role),
        "ver": user.token_version or 0,
        "exp": int(time.time()) + settings.token_expire_seconds,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a token. Returns None if invalid/expired."""
    if not token:
        return None
    try:
        settings = get_settings()
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[ALGORITHM])
        int(claims["sub"])
        return claims
    except (JWTError, KeyError, ValueError):
        return None


def token_matches(claims: dict, user) -> bool:
    """False once the user has signed out since the token was issued."""
    return int(claims.get("sub", -1)) == user.id and claims.get("ver", 0) == (user.token_version or 0)


def raise_for_guard(result: GuardResult) -> None:
    """Translate a non-allow guard decision into an HTTP error."""
    if result.decision is Decision.ALLOW:
        return
    if result.decision is Decision.SIGN_IN:
        raise HTTPException(
            status_code=401,
            detail={"message": "Please sign in to continue", "next": result.redirect_to},
            headers={"WWW-Authenticate": "Bearer"},
        )
    if result.decision is Decision.ACCESS_DENIED:
        raise HTTPException(
            status_code=403,
            detail={
                "message": "You don't have administrator privileges to access this area",
                "current_role": result.current_role.value if result.current_role else None,
                "required_role": result.required_role.value if result.required_role else None,
            },
        )
    if result.decision is Decision.PENDING:
        raise HTTPException(status_code=503, detail="Session is still loading")
    raise ValueError(f"Unhandled guard decision: {result.decision!r}")


async def get_optional_session(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[Session]:
    """
    FastAPI dependency. Extracts the bearer token and resolves it to a Session.
    Returns None when the header is absent, the token is invalid, expired or
    revoked by a logout, or the account no longer exists.
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header[7:]
    claims = decode_token(token)
    if not claims:
        return None
    user = await credential_store.get_by_id(db, int(claims["sub"]))
    if not user or not token_matches(claims, user):
        return None
    return Session.from_user(user, token=token)


async def require_session(
    request: Request,
    session: Optional[Session] = Depends(get_optional_session),
) -> Session:
    raise_for_guard(authorize(session, AccessLevel.SIGNED_IN, destination=request.url.path))
    return session


async def require_admin(
    request: Request,
    session: Optional[Session] = Depends(get_optional_session),
) -> Session:
    raise_for_guard(authorize(session, AccessLevel.ADMIN, destination=request.url.path))
    return session
