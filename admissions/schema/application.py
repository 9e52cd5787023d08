from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import List, Optional
from uuid import UUID
from datetime import datetime

from admissions.database.models.application import ApplicationSource, ApplicationStatus


class ApplicationBase(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: str = Field(..., min_length=5, max_length=30)
    course: str = Field(..., min_length=1, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    prior_academic_grade: Optional[str] = Field(None, max_length=20)

    @field_validator("full_name", "phone", "course")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class PublicApplicationCreate(ApplicationBase):
    """Online application form submission."""


class ApplicationCreate(ApplicationBase):
    """Application entered by an admin. The admission number may be overridden."""
    admission_number: Optional[str] = Field(None, max_length=50)


class ApplicationUpdate(BaseModel):
    """Partial update. Status, source and applied_at are not editable here."""
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=5, max_length=30)
    course: Optional[str] = Field(None, min_length=1, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    prior_academic_grade: Optional[str] = Field(None, max_length=20)
    admission_number: Optional[str] = Field(None, max_length=50)


class ApplicationResponse(BaseModel):
    id: UUID
    admission_number: str
    full_name: str
    email: Optional[str]
    phone: str
    course: str
    location: Optional[str]
    prior_academic_grade: Optional[str]
    status: ApplicationStatus
    source: ApplicationSource
    applied_at: datetime
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class ApplicationStats(BaseModel):
    total: int
    pending: int
    accepted: int
    rejected: int


class StatusUpdateRequest(BaseModel):
    status: ApplicationStatus
    notes: Optional[str] = None


class NotificationReport(BaseModel):
    """Outcome of the side effects that follow an acceptance or a resend."""
    letter_generated: bool = False
    email_attempted: bool = False
    email_sent: bool = False
    message_id: Optional[str] = None
    whatsapp_link: Optional[str] = None
    errors: List[str] = Field(default_factory=list)

    @property
    def failed(self) -> bool:
        return bool(self.errors)


class StatusTransitionResponse(BaseModel):
    application: ApplicationResponse
    previous_status: ApplicationStatus
    status_changed: bool
    notification: Optional[NotificationReport] = None
    warning: Optional[str] = None


class StatusHistoryResponse(BaseModel):
    id: UUID
    from_status: ApplicationStatus
    to_status: ApplicationStatus
    notes: Optional[str]
    changed_by: Optional[UUID]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
