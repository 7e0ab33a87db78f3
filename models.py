from datetime import datetime
from typing import Optional, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from database_orm.models import ContactStatus, AppointmentStatus


class Settings(BaseSettings):
    """Process settings read from the environment / .env at import time."""
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


class ContactSubmissionCreate(BaseModel):
    """Request model for the public contact form."""
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    company: Optional[str] = Field(None, max_length=200)
    service: Optional[str] = Field(
        None,
        max_length=100,
        description="Service the visitor is interested in",
        examples=["colocation", "managed-hosting", "site-visit"]
    )
    message: str = Field(..., min_length=1, max_length=5000)

    @field_validator("name", "message")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class ContactSubmissionResponse(BaseModel):
    """Response model for a stored contact submission."""
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    service: Optional[str] = None
    message: str
    status: ContactStatus
    created_at: datetime
    updated_at: datetime


class ContactSubmissionListResponse(BaseModel):
    items: List[ContactSubmissionResponse]
    total: int


class ContactStatusUpdate(BaseModel):
    """Admin status transition for a contact submission."""
    status: ContactStatus


class AppointmentCreate(BaseModel):
    """Request model for the public booking form."""
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    company: Optional[str] = Field(None, max_length=200)
    service: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=5000)
    requested_time: datetime = Field(
        ...,
        description="Requested slot. Naive values are interpreted in `timezone`."
    )
    timezone: str = Field(
        "UTC",
        max_length=64,
        description="IANA timezone name the visitor booked in",
        examples=["UTC", "America/New_York", "Asia/Almaty"]
    )

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone '{value}'")
        return value

    def requested_time_aware(self) -> datetime:
        """requested_time with the booking timezone applied when it was naive."""
        if self.requested_time.tzinfo is None:
            return self.requested_time.replace(tzinfo=ZoneInfo(self.timezone))
        return self.requested_time


class AppointmentResponse(BaseModel):
    """Response model for a stored appointment."""
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    service: Optional[str] = None
    notes: Optional[str] = None
    requested_time: datetime
    timezone: str
    status: AppointmentStatus
    created_at: datetime
    updated_at: datetime


class AppointmentListResponse(BaseModel):
    items: List[AppointmentResponse]
    total: int


class AppointmentStatusUpdate(BaseModel):
    """Admin approval decision for an appointment."""
    status: AppointmentStatus


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=150)
    password: str = Field(..., min_length=1, max_length=1024)


class AdminResponse(BaseModel):
    id: str
    username: str


class AdminCreate(BaseModel):
    """Request model for an existing admin adding another admin."""
    username: str = Field(..., min_length=3, max_length=150)
    password: str = Field(..., min_length=8, max_length=1024)


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    admin: AdminResponse
