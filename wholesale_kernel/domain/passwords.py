"""
Password hashing for kernel users.

Hashes are bcrypt strings (``$2b$<rounds>$...``).  bcrypt only looks at
the first 72 bytes of a password; longer input is cut there before
hashing and verifying so both sides agree.
"""

import bcrypt

DEFAULT_ROUNDS = 12
MIN_ROUNDS = 4
MAX_ROUNDS = 31

_MAX_PASSWORD_BYTES = 72
_PREFIXES = ("$2a$", "$2b$", "$2y$")


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_MAX_PASSWORD_BYTES]


def hash_password(password: str, *, rounds: int = DEFAULT_ROUNDS) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, encoded: str | None) -> bool:
    """True if ``password`` matches ``encoded``.  Malformed hashes never match."""
    if not encoded or not is_password_hash(encoded):
        return False
    try:
        return bcrypt.checkpw(_encode(password), encoded.encode("utf-8"))
    except ValueError:
        return False


def is_password_hash(value: str) -> bool:
    return value.startswith(_PREFIXES) and len(value) == 60
