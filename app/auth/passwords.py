"""Salted, slow password hashing for admin accounts (Werkzeug scrypt)."""

from werkzeug.security import generate_password_hash, check_password_hash

PASSWORD_METHOD = "scrypt"

# Verified against when the username is unknown, so both failure paths
# cost one key derivation.
_DUMMY_HASH = generate_password_hash("not-a-real-password", method=PASSWORD_METHOD)


def hash_password(password: str) -> str:
    """Hash a password for storage. The result embeds its own salt."""
    if not password:
        raise ValueError("Password must not be empty")
    return generate_password_hash(password, method=PASSWORD_METHOD)


def verify_password(stored_hash: str, password: str) -> bool:
    """Re-derive the hash for `password` and compare it with the stored one."""
    if not stored_hash or password is None:
        return False
    return check_password_hash(stored_hash, password)


def dummy_verify(password: str) -> bool:
    """Burn one verification; always False."""
    check_password_hash(_DUMMY_HASH, password or "")
    return False
