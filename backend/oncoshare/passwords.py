"""bcrypt password hashing. Callers on the event loop should run these in a thread."""

import bcrypt
from oncoshare.config import get_settings

# bcrypt only looks at the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = None) -> str:
    """Returns a bcrypt hash with a freshly generated salt embedded."""
    if rounds is None:
        rounds = get_settings().bcrypt_rounds
    hashed_bytes = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed_bytes.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Compares a plain text password with a stored hash."""
    encoded = plain_password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False
