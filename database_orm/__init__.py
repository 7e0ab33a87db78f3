"""
Database package for the relational store (PostgreSQL in production,
SQLite for tests and local development) with SQLAlchemy ORM.

This package provides:
- SQLAlchemy models for contact submissions, appointments, admin users
  and admin sessions
- Connection management and schema creation
"""

from database_orm.models import (
    Base,
    ContactSubmission,
    ContactStatus,
    Appointment,
    AppointmentStatus,
    AdminUser,
    AdminSession,
)
from database_orm.connection import (
    get_session,
    get_engine,
    init_connection,
    close_connection,
    create_schema,
    health_check,
)

__all__ = [
    "Base",
    "ContactSubmission",
    "ContactStatus",
    "Appointment",
    "AppointmentStatus",
    "AdminUser",
    "AdminSession",
    "get_session",
    "get_engine",
    "init_connection",
    "close_connection",
    "create_schema",
    "health_check",
]
