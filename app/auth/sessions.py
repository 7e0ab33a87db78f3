"""
Admin session manager.

Issues, validates and revokes bearer session tokens for admin users stored
in the relational database.

Session lifecycle (one row per live login):

    issued -> active -> expired   (now >= expires_at, detected at validation)
                     -> revoked   (logout deletes the row)

Expiry is checked on every validation, so a session is rejected as soon as
it expires even if the cleanup sweep (purge_expired) has not removed the row
yet. Nothing moves a session out of expired or revoked.

Tokens are random (secrets.token_urlsafe) and only their HMAC-SHA256 digest,
keyed with the session secret, is persisted. A token therefore cannot be
derived from the admin id or password, and a database dump does not yield
usable tokens.
"""

import enum
import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError

from app.auth.passwords import hash_password, verify_password, dummy_verify
from app.errors import AuthenticationError, ValidationFailed
from database_orm.connection import get_session
from database_orm.models import AdminUser, AdminSession
from database_sqlalchemy import as_utc

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionState(str, enum.Enum):
    ISSUED = "issued"
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


@dataclass(frozen=True)
class AdminIdentity:
    """Authenticated admin attached to a request."""
    id: str
    username: str


@dataclass(frozen=True)
class IssuedSession:
    """Result of a successful login. `token` is shown to the client once."""
    token: str
    admin: AdminIdentity
    expires_at: datetime
    state: SessionState = SessionState.ACTIVE


@dataclass(frozen=True)
class SessionValidation:
    """
    Outcome of validating a bearer token.

    Tokens that match no row (never issued, or logged out) report REVOKED.
    """
    state: SessionState
    admin: Optional[AdminIdentity] = None
    expires_at: Optional[datetime] = None

    @property
    def is_valid(self) -> bool:
        return self.state is SessionState.ACTIVE and self.admin is not None


class SessionManager:
    """
    Owns admin password checks and the admin_sessions table.

    Each operation touches a single session row in its own database
    session; no operation spans rows in one transaction.
    """

    def __init__(
        self,
        secret: str,
        ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utcnow,
    ):
        if not secret:
            raise ValueError("Session secret must not be empty")
        if ttl <= timedelta(0):
            raise ValueError("Session TTL must be positive")
        self._secret = secret.encode("utf-8")
        self.ttl = ttl
        self._clock = clock

    def _digest(self, token: str) -> str:
        return hmac.new(self._secret, token.encode("utf-8"), hashlib.sha256).hexdigest()

    def _now(self) -> datetime:
        return as_utc(self._clock())

    # ------------------------------------------------------------------
    # Admin users
    # ------------------------------------------------------------------

    def create_admin(self, username: str, password: str) -> AdminIdentity:
        """
        Create an admin user.

        Raises:
            ValidationFailed: Empty credentials or username already taken
        """
        username = (username or "").strip()
        if not username or not password:
            raise ValidationFailed("Username and password are required")

        password_hash = hash_password(password)
        try:
            with get_session() as session:
                if session.scalar(select(AdminUser.id).filter_by(username=username)):
                    raise ValidationFailed(f"Admin '{username}' already exists")
                admin = AdminUser(username=username, password_hash=password_hash)
                session.add(admin)
                session.flush()
                identity = AdminIdentity(id=admin.id, username=admin.username)
        except IntegrityError as e:
            # Lost a race against a concurrent create
            raise ValidationFailed(f"Admin '{username}' already exists") from e

        logger.info(f"Created admin user {identity.username}")
        return identity

    def count_admins(self) -> int:
        with get_session() as session:
            return session.scalar(select(func.count(AdminUser.id))) or 0

    def ensure_bootstrap_admin(self, username: str, password: str) -> Optional[AdminIdentity]:
        """Create the first admin if the table is empty; otherwise do nothing."""
        if self.count_admins() > 0:
            return None
        try:
            return self.create_admin(username, password)
        except ValidationFailed:
            # Another cold start created it first
            return None

    def authenticate(self, username: str, password: str) -> Optional[AdminIdentity]:
        """
        Check credentials.

        Unknown usernames and wrong passwords both return None after one
        password verification, so callers cannot tell them apart.
        """
        with get_session() as session:
            admin = session.scalar(select(AdminUser).filter_by(username=(username or "").strip()))
            if admin is None:
                dummy_verify(password)
                return None
            if not verify_password(admin.password_hash, password):
                return None
            return AdminIdentity(id=admin.id, username=admin.username)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> IssuedSession:
        """
        Authenticate and issue a new session token.

        Raises:
            AuthenticationError: Same message for unknown user and wrong password
        """
        admin = self.authenticate(username, password)
        if admin is None:
            logger.info("Admin login failed")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        token = secrets.token_urlsafe(TOKEN_BYTES)
        now = self._now()
        expires_at = now + self.ttl

        with get_session() as session:
            session.add(AdminSession(
                token_hash=self._digest(token),
                admin_id=admin.id,
                created_at=now,
                expires_at=expires_at,
            ))
            user = session.get(AdminUser, admin.id)
            if user is not None:
                user.last_login_at = now

        logger.info(f"Admin {admin.username} logged in; session expires {expires_at.isoformat()}")
        return IssuedSession(token=token, admin=admin, expires_at=expires_at)

    def validate(self, token: Optional[str]) -> SessionValidation:
        """
        Resolve a bearer token to its admin.

        Returns EXPIRED once the stored expiry has passed, whether or not the
        row has been purged; REVOKED for tokens with no row.
        """
        if not token:
            return SessionValidation(state=SessionState.REVOKED)

        with get_session() as session:
            row = session.execute(
                select(AdminSession.expires_at, AdminUser.id, AdminUser.username)
                .join(AdminUser, AdminUser.id == AdminSession.admin_id)
                .where(AdminSession.token_hash == self._digest(token))
            ).first()

        if row is None:
            return SessionValidation(state=SessionState.REVOKED)

        expires_at = as_utc(row.expires_at)
        if self._now() >= expires_at:
            return SessionValidation(state=SessionState.EXPIRED, expires_at=expires_at)

        return SessionValidation(
            state=SessionState.ACTIVE,
            admin=AdminIdentity(id=row.id, username=row.username),
            expires_at=expires_at,
        )

    def logout(self, token: Optional[str]) -> bool:
        """
        Revoke a session by deleting its row.

        Idempotent: returns False (without raising) for unknown, already
        revoked or empty tokens.
        """
        if not token:
            return False

        with get_session() as session:
            result = session.execute(
                delete(AdminSession).where(AdminSession.token_hash == self._digest(token))
            )
            revoked = result.rowcount > 0

        if revoked:
            logger.info("Admin session revoked")
        return revoked

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete session rows past their expiry. Returns the number removed."""
        cutoff = as_utc(now) if now is not None else self._now()
        with get_session() as session:
            result = session.execute(
                delete(AdminSession).where(AdminSession.expires_at <= cutoff)
            )
            purged = result.rowcount or 0

        logger.info(f"Purged {purged} expired admin sessions")
        return purged
