"""
Role authorization guard.

A pure decision over (session, required access level). The result is one of
four outcomes rather than a boolean: "not signed in" and "signed in without
enough privilege" lead to different places for the user.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from oncoshare.enums import Role
from oncoshare.sessions import Session


class AccessLevel(str, Enum):
    ANONYMOUS_OK = "anonymous-ok"
    SIGNED_IN = "must-be-signed-in"
    ADMIN = "must-be-admin"


class Decision(str, Enum):
    PENDING = "pending"
    ALLOW = "allow"
    SIGN_IN = "sign_in"
    ACCESS_DENIED = "access_denied"


@dataclass(frozen=True)
class GuardResult:
    decision: Decision
    redirect_to: Optional[str] = None
    current_role: Optional[Role] = None
    required_role: Optional[Role] = None

    @property
    def allowed(self) -> bool:
        return self.decision is Decision.ALLOW


def has_admin_rights(role: Role) -> bool:
    if role is Role.ADMIN:
        return True
    if role is Role.USER or role is Role.DOCTOR:
        return False
    raise ValueError(f"Unhandled role: {role!r}")


def authorize(
    session: Optional[Session],
    level: AccessLevel,
    loading: bool = False,
    destination: Optional[str] = None,
) -> GuardResult:
    if loading:
        return GuardResult(Decision.PENDING)

    if level is AccessLevel.ANONYMOUS_OK:
        return GuardResult(Decision.ALLOW, current_role=session.role if session else None)

    if session is None:
        return GuardResult(Decision.SIGN_IN, redirect_to=destination)

    if level is AccessLevel.SIGNED_IN:
        return GuardResult(Decision.ALLOW, current_role=session.role)

    if level is AccessLevel.ADMIN:
        if has_admin_rights(session.role):
            return GuardResult(Decision.ALLOW, current_role=session.role)
        return GuardResult(
            Decision.ACCESS_DENIED,
            current_role=session.role,
            required_role=Role.ADMIN,
        )

    raise ValueError(f"Unhandled access level: {level!r}")
