"""Public endpoints: health, contact form and appointment booking."""

import logging

from fastapi import APIRouter, status

import database_sqlalchemy as records
from database_orm.connection import health_check
from models import (
    AppointmentCreate,
    AppointmentResponse,
    ContactSubmissionCreate,
    ContactSubmissionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["public"])


@router.get("/health")
def health():
    """Liveness plus database reachability."""
    database = health_check()
    return {
        "status": "healthy" if database.get("healthy") else "degraded",
        "database": database,
    }


@router.post(
    "/contact",
    response_model=ContactSubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
def submit_contact(payload: ContactSubmissionCreate):
    """
    Store a contact form submission.

    New submissions always start as `unread`.
    """
    submission = records.create_contact_submission(
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        company=payload.company,
        service=payload.service,
        message=payload.message,
    )
    return ContactSubmissionResponse(**submission)


@router.post(
    "/appointments",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
)
def book_appointment(payload: AppointmentCreate):
    """
    Store an appointment request.

    New appointments always start as `pending` until an admin approves or
    rejects them.
    """
    appointment = records.create_appointment(
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        company=payload.company,
        service=payload.service,
        notes=payload.notes,
        requested_time=payload.requested_time_aware(),
        timezone_name=payload.timezone,
    )
    return AppointmentResponse(**appointment)
