"""Password hashing helpers built on ``bcrypt``."""

from __future__ import annotations

import bcrypt

# bcrypt hashes always start with "$2" (``$2a$``, ``$2b$``, ``$2y$``).
BCRYPT_PREFIX = "$2"


def is_password_hash(value: str | None) -> bool:
    return bool(value) and value.startswith(BCRYPT_PREFIX)


def hash_password(plain: str, rounds: int = 10) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """Return ``True`` when ``plain`` matches ``hashed``.

    ``bcrypt.checkpw`` compares digests in constant time. A missing or
    malformed hash never verifies.
    """

    if not is_password_hash(hashed):
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False
