"""
Admin endpoints: login/logout and management of contact submissions and
appointments.

Everything except /login and /logout depends on get_current_admin and
answers 401 without an active session.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from starlette.concurrency import run_in_threadpool

import database_sqlalchemy as records
from app.auth.sessions import AdminIdentity, SessionManager
from app.config import SessionSettings
from app.errors import NotFoundError
from app.middleware.auth import get_current_admin
from database_orm.models import ContactStatus, AppointmentStatus
from models import (
    AdminCreate,
    AdminResponse,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatusUpdate,
    ContactStatusUpdate,
    ContactSubmissionListResponse,
    ContactSubmissionResponse,
    LoginRequest,
    LoginResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_session_settings(request: Request) -> SessionSettings:
    return request.app.state.session_settings


# ============================================================================
# Authentication
# ============================================================================

@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
    settings: SessionSettings = Depends(get_session_settings),
):
    """
    Exchange username/password for a session token.

    The token is returned in the body (for Authorization: Bearer) and set as
    an HttpOnly cookie for the browser client. Unknown usernames and wrong
    passwords get the same 401.
    """
    issued = await run_in_threadpool(manager.login, payload.username, payload.password)

    response.set_cookie(
        key=settings.cookie_name,
        value=issued.token,
        max_age=int(manager.ttl.total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )
    return LoginResponse(
        token=issued.token,
        expires_at=issued.expires_at,
        admin=AdminResponse(id=issued.admin.id, username=issued.admin.username),
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    manager: SessionManager = Depends(get_session_manager),
    settings: SessionSettings = Depends(get_session_settings),
):
    """Revoke the current session. Succeeds even if it is already gone."""
    token = getattr(request.state, "session_token", None)
    if token:
        await run_in_threadpool(manager.logout, token)

    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(settings.cookie_name, path="/")
    return response


@router.get("/me", response_model=AdminResponse)
def me(admin: AdminIdentity = Depends(get_current_admin)):
    return AdminResponse(id=admin.id, username=admin.username)


@router.post("/users", response_model=AdminResponse, status_code=status.HTTP_201_CREATED)
def create_admin_user(
    payload: AdminCreate,
    admin: AdminIdentity = Depends(get_current_admin),
    manager: SessionManager = Depends(get_session_manager),
):
    """Add another admin. Only an authenticated admin can do this."""
    created = manager.create_admin(payload.username, payload.password)
    logger.info(f"Admin {admin.username} created admin {created.username}")
    return AdminResponse(id=created.id, username=created.username)


# ============================================================================
# Contact submissions
# ============================================================================

@router.get("/contacts", response_model=ContactSubmissionListResponse)
def list_contacts(
    status_filter: Optional[ContactStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: AdminIdentity = Depends(get_current_admin),
):
    items = records.list_contact_submissions(status=status_filter, limit=limit, offset=offset)
    total = records.count_contact_submissions(status=status_filter)
    return ContactSubmissionListResponse(
        items=[ContactSubmissionResponse(**item) for item in items],
        total=total,
    )


@router.get("/contacts/{submission_id}", response_model=ContactSubmissionResponse)
def get_contact(submission_id: str, admin: AdminIdentity = Depends(get_current_admin)):
    submission = records.get_contact_submission(submission_id)
    if submission is None:
        raise NotFoundError(f"Contact submission {submission_id} not found")
    return ContactSubmissionResponse(**submission)


@router.patch("/contacts/{submission_id}", response_model=ContactSubmissionResponse)
def update_contact(
    submission_id: str,
    payload: ContactStatusUpdate,
    admin: AdminIdentity = Depends(get_current_admin),
):
    """Mark a submission as responded/ignored (or back to unread)."""
    submission = records.update_contact_status(submission_id, payload.status)
    if submission is None:
        raise NotFoundError(f"Contact submission {submission_id} not found")
    logger.info(f"Admin {admin.username} set contact {submission_id} to {payload.status.value}")
    return ContactSubmissionResponse(**submission)


# ============================================================================
# Appointments
# ============================================================================

@router.get("/appointments", response_model=AppointmentListResponse)
def list_appointments(
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: AdminIdentity = Depends(get_current_admin),
):
    items = records.list_appointments(status=status_filter, limit=limit, offset=offset)
    total = records.count_appointments(status=status_filter)
    return AppointmentListResponse(
        items=[AppointmentResponse(**item) for item in items],
        total=total,
    )


@router.get("/appointments/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(appointment_id: str, admin: AdminIdentity = Depends(get_current_admin)):
    appointment = records.get_appointment(appointment_id)
    if appointment is None:
        raise NotFoundError(f"Appointment {appointment_id} not found")
    return AppointmentResponse(**appointment)


@router.patch("/appointments/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(
    appointment_id: str,
    payload: AppointmentStatusUpdate,
    admin: AdminIdentity = Depends(get_current_admin),
):
    """Approve or reject an appointment request."""
    appointment = records.update_appointment_status(appointment_id, payload.status)
    if appointment is None:
        raise NotFoundError(f"Appointment {appointment_id} not found")
    logger.info(f"Admin {admin.username} set appointment {appointment_id} to {payload.status.value}")
    return AppointmentResponse(**appointment)
