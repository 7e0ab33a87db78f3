"""Admin authentication: password hashing and the session manager."""

from app.auth.passwords import hash_password, verify_password
from app.auth.sessions import (
    AdminIdentity,
    IssuedSession,
    SessionManager,
    SessionState,
    SessionValidation,
)

__all__ = [
    "hash_password",
    "verify_password",
    "AdminIdentity",
    "IssuedSession",
    "SessionManager",
    "SessionState",
    "SessionValidation",
]
