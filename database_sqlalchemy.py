"""
SQLAlchemy-based record operations for contact submissions and appointments.

Every function is an independent point operation running in its own
session; nothing here spans more than one row in a transaction.

Status changes only happen through update_contact_status and
update_appointment_status, which the admin routes call. Creation always
starts a record in its initial status (unread / pending).
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, func

from database_orm.models import (
    ContactSubmission,
    ContactStatus,
    Appointment,
    AppointmentStatus,
)
from database_orm.connection import get_session, init_connection, create_schema

logger = logging.getLogger(__name__)


def init_db(database_url: str) -> None:
    """
    Initialize database connection and create missing tables.

    Args:
        database_url: SQLAlchemy database URL
    """
    init_connection(database_url)
    create_schema()
    logger.info("Database connection initialized")


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round trip)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ============================================================================
# Contact submissions
# ============================================================================

def create_contact_submission(
    name: str,
    email: str,
    message: str,
    phone: Optional[str] = None,
    company: Optional[str] = None,
    service: Optional[str] = None,
) -> dict:
    """
    Store a new contact form submission (status: unread).

    Returns:
        Dictionary representation of the created submission
    """
    with get_session() as session:
        submission = ContactSubmission(
            name=name,
            email=email,
            phone=phone,
            company=company,
            service=service,
            message=message,
            status=ContactStatus.UNREAD,
        )
        session.add(submission)
        session.flush()
        session.refresh(submission)

        logger.info(f"Stored contact submission {submission.id}")
        return _contact_to_dict(submission)


def get_contact_submission(submission_id: str) -> Optional[dict]:
    """Get a contact submission by ID, or None."""
    with get_session() as session:
        submission = session.get(ContactSubmission, submission_id)
        return _contact_to_dict(submission)


def list_contact_submissions(
    status: Optional[ContactStatus] = None,
    limit: int = 100,
    offset: int = 0
) -> list[dict]:
    """
    List contact submissions, newest first.

    Args:
        status: Optional status filter
        limit: Maximum number of rows
        offset: Offset for pagination
    """
    with get_session() as session:
        stmt = select(ContactSubmission)
        if status is not None:
            stmt = stmt.filter_by(status=ContactStatus(status))
        stmt = stmt.order_by(ContactSubmission.created_at.desc()).limit(limit).offset(offset)

        return [_contact_to_dict(s) for s in session.scalars(stmt)]


def count_contact_submissions(status: Optional[ContactStatus] = None) -> int:
    with get_session() as session:
        stmt = select(func.count(ContactSubmission.id))
        if status is not None:
            stmt = stmt.filter_by(status=ContactStatus(status))
        return session.scalar(stmt) or 0


def update_contact_status(submission_id: str, status: ContactStatus) -> Optional[dict]:
    """
    Apply an admin status transition to a contact submission.

    Returns:
        Updated submission dictionary, or None if it does not exist
    """
    with get_session() as session:
        submission = session.get(ContactSubmission, submission_id)
        if submission is None:
            return None

        previous = submission.status
        submission.status = ContactStatus(status)
        session.flush()
        session.refresh(submission)

        logger.info(f"Contact submission {submission_id}: {previous.value} -> {submission.status.value}")
        return _contact_to_dict(submission)


# ============================================================================
# Appointments
# ============================================================================

def create_appointment(
    name: str,
    email: str,
    requested_time: datetime,
    timezone_name: str = "UTC",
    phone: Optional[str] = None,
    company: Optional[str] = None,
    service: Optional[str] = None,
    notes: Optional[str] = None,
) -> dict:
    """
    Store a new appointment request (status: pending).

    Args:
        requested_time: Requested slot; converted to UTC for storage
        timezone_name: IANA timezone the visitor booked in

    Returns:
        Dictionary representation of the created appointment
    """
    with get_session() as session:
        appointment = Appointment(
            name=name,
            email=email,
            phone=phone,
            company=company,
            service=service,
            notes=notes,
            requested_time=as_utc(requested_time),
            timezone=timezone_name,
            status=AppointmentStatus.PENDING,
        )
        session.add(appointment)
        session.flush()
        session.refresh(appointment)

        logger.info(f"Stored appointment request {appointment.id}")
        return _appointment_to_dict(appointment)


def get_appointment(appointment_id: str) -> Optional[dict]:
    """Get an appointment by ID, or None."""
    with get_session() as session:
        appointment = session.get(Appointment, appointment_id)
        return _appointment_to_dict(appointment)


def list_appointments(
    status: Optional[AppointmentStatus] = None,
    limit: int = 100,
    offset: int = 0
) -> list[dict]:
    """List appointments, newest request first."""
    with get_session() as session:
        stmt = select(Appointment)
        if status is not None:
            stmt = stmt.filter_by(status=AppointmentStatus(status))
        stmt = stmt.order_by(Appointment.created_at.desc()).limit(limit).offset(offset)

        return [_appointment_to_dict(a) for a in session.scalars(stmt)]


def count_appointments(status: Optional[AppointmentStatus] = None) -> int:
    with get_session() as session:
        stmt = select(func.count(Appointment.id))
        if status is not None:
            stmt = stmt.filter_by(status=AppointmentStatus(status))
        return session.scalar(stmt) or 0


def update_appointment_status(appointment_id: str, status: AppointmentStatus) -> Optional[dict]:
    """
    Apply an admin approval decision to an appointment.

    Returns:
        Updated appointment dictionary, or None if it does not exist
    """
    with get_session() as session:
        appointment = session.get(Appointment, appointment_id)
        if appointment is None:
            return None

        previous = appointment.status
        appointment.status = AppointmentStatus(status)
        session.flush()
        session.refresh(appointment)

        logger.info(f"Appointment {appointment_id}: {previous.value} -> {appointment.status.value}")
        return _appointment_to_dict(appointment)


# ============================================================================
# Serialization
# ============================================================================

def _contact_to_dict(submission: Optional[ContactSubmission]) -> Optional[dict]:
    if submission is None:
        return None

    return {
        "id": submission.id,
        "name": submission.name,
        "email": submission.email,
        "phone": submission.phone,
        "company": submission.company,
        "service": submission.service,
        "message": submission.message,
        "status": submission.status.value,
        "created_at": as_utc(submission.created_at),
        "updated_at": as_utc(submission.updated_at),
    }


def _appointment_to_dict(appointment: Optional[Appointment]) -> Optional[dict]:
    if appointment is None:
        return None

    return {
        "id": appointment.id,
        "name": appointment.name,
        "email": appointment.email,
        "phone": appointment.phone,
        "company": appointment.company,
        "service": appointment.service,
        "notes": appointment.notes,
        "requested_time": as_utc(appointment.requested_time),
        "timezone": appointment.timezone,
        "status": appointment.status.value,
        "created_at": as_utc(appointment.created_at),
        "updated_at": as_utc(appointment.updated_at),
    }
