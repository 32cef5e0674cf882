"""Password hashing with bcrypt.

bcrypt only looks at the first 72 bytes of a password and recent releases
refuse longer input, so request schemas cap password length accordingly.
"""

import bcrypt

from stayfinder.config import settings

MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password with a fresh salt (``settings.bcrypt_rounds`` cost by default)."""
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if ``plain_password`` matches the stored hash."""
    encoded = plain_password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(encoded, hashed_password.encode("utf-8"))
