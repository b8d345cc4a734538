"""Password hashing for stored credentials.

Learn: Only bcrypt hashes are ever written or accepted. The cost factor
comes from TASKAPI_BCRYPT_ROUNDS (tests drop it to 4 to stay fast).
bcrypt ignores everything past 72 bytes, so the user schemas reject
longer passwords up front rather than letting two different passwords
share a hash.
"""

import bcrypt

BCRYPT_MAX_BYTES = 72


def hash_password(password: str, rounds: int = 12) -> str:
    """Salted bcrypt hash ("$2b$<rounds>$...") as text for the users table."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """True if `password` matches. A corrupt or empty hash never matches."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False
