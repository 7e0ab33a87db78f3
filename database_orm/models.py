"""
SQLAlchemy ORM models for the hosting site's relational store.

This module defines the database schema using SQLAlchemy ORM with:
- Contact submissions from the public contact form
- Appointment (site visit / consultation) booking requests
- Admin users and their login sessions

Status columns are restricted to their enumerated values and are only
changed through explicit admin actions (see database_sqlalchemy.py).
Session rows never store the bearer token itself, only its keyed digest
(see app/auth/sessions.py).
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    String,
    Text,
    DateTime,
    ForeignKey,
    Index,
    Enum as SAEnum,
)
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class ContactStatus(str, enum.Enum):
    """Lifecycle of a contact submission."""
    UNREAD = "unread"
    RESPONDED = "responded"
    IGNORED = "ignored"


class AppointmentStatus(str, enum.Enum):
    """Lifecycle of an appointment request."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def _status_column(enum_cls: type[enum.Enum], name: str) -> SAEnum:
    # Store the lowercase values, checked by a CHECK constraint instead of a native enum
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class ContactSubmission(Base):
    """
    Contact form submissions.

    Created by the public contact endpoint; status is moved from unread
    to responded/ignored by an admin.
    """
    __tablename__ = "contact_submissions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    # Contact fields
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    company: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    service: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[ContactStatus] = mapped_column(
        _status_column(ContactStatus, "contact_status"),
        nullable=False,
        default=ContactStatus.UNREAD,
        index=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<ContactSubmission(id={self.id}, email={self.email}, status={self.status.value})>"


class Appointment(Base):
    """
    Booking requests for a consultation or a facility visit.

    requested_time is stored in UTC; the visitor's IANA timezone is kept
    alongside so the admin UI can render the local time they picked.
    """
    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    company: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    service: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    requested_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")

    status: Mapped[AppointmentStatus] = mapped_column(
        _status_column(AppointmentStatus, "appointment_status"),
        nullable=False,
        default=AppointmentStatus.PENDING,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, requested_time={self.requested_time}, status={self.status.value})>"


class AdminUser(Base):
    """Administrator identity. Only the salted password hash is stored."""
    __tablename__ = "admin_users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    username: Mapped[str] = mapped_column(String(150), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    sessions: Mapped[list["AdminSession"]] = relationship(
        "AdminSession",
        back_populates="admin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<AdminUser(id={self.id}, username={self.username})>"


class AdminSession(Base):
    """
    One row per live admin login.

    token_hash is an HMAC digest of the bearer token; the token itself is
    only ever returned to the client at login.
    """
    __tablename__ = "admin_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)

    admin_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("admin_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    admin: Mapped["AdminUser"] = relationship("AdminUser", back_populates="sessions")

    def __repr__(self) -> str:
        return f"<AdminSession(id={self.id}, admin_id={self.admin_id}, expires_at={self.expires_at})>"


# Admin list views sort newest first within a status
Index("idx_contact_submissions_status_created", ContactSubmission.status, ContactSubmission.created_at.desc())
Index("idx_appointments_status_requested", Appointment.status, Appointment.requested_time)

# Cleanup sweep scans by expiry
Index("idx_admin_sessions_expires_at", AdminSession.expires_at)
