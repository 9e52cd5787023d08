import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    Column, String, DateTime, Text, Integer, Uuid,
    ForeignKey, Enum as SQLEnum, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from admissions.database.config.db import Base


# ==================== ENUMS ====================

class ApplicationStatus(str, Enum):
    """Application lifecycle. Every change is admin-initiated or auto-approval."""
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class ApplicationSource(str, Enum):
    """Where the record came from. Never changes after creation."""
    MANUAL = "manual"
    ONLINE_APPLICATION = "online_application"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


def _utcnow():
    return datetime.now(timezone.utc)


# ==================== MODELS ====================

class Application(Base):
    """A student's application, identified to humans by its admission number."""
    __tablename__ = "applications"

    # Primary Key
    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        nullable=False,
    )

    # Human-readable admission number (e.g., "EAVI/0007/25")
    admission_number = Column(String(50), unique=True, nullable=False, index=True)

    # ==================== STUDENT DETAILS ====================
    full_name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(30), nullable=False)
    # Course is referenced by name; deleting a course leaves this dangling
    course = Column(String(255), nullable=False, index=True)
    location = Column(String(255), nullable=True)
    prior_academic_grade = Column(String(20), nullable=True)

    # ==================== STATUS & PROVENANCE ====================
    status = Column(
        SQLEnum(ApplicationStatus, name="applicationstatus", values_callable=_enum_values),
        nullable=False,
        default=ApplicationStatus.PENDING,
        index=True,
    )
    source = Column(
        SQLEnum(ApplicationSource, name="applicationsource", values_callable=_enum_values),
        nullable=False,
        default=ApplicationSource.MANUAL,
    )

    # ==================== IMPORTANT DATES ====================
    applied_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # ==================== METADATA ====================
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # ==================== RELATIONSHIPS ====================
    status_history = relationship(
        "ApplicationStatusHistory",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationStatusHistory.created_at",
    )

    # ==================== INDEXES ====================
    __table_args__ = (
        Index('ix_application_status_applied', 'status', 'applied_at'),
    )


class ApplicationStatusHistory(Base):
    """Audit trail for application status changes."""
    __tablename__ = "application_status_history"

    # Primary Key
    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        nullable=False,
    )

    application_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # ==================== STATUS CHANGE ====================
    from_status = Column(
        SQLEnum(ApplicationStatus, name="applicationstatus", values_callable=_enum_values),
        nullable=False,
    )
    to_status = Column(
        SQLEnum(ApplicationStatus, name="applicationstatus", values_callable=_enum_values),
        nullable=False,
    )
    notes = Column(Text, nullable=True)

    # ==================== CHANGED BY ====================
    changed_by = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,  # Null = automatic approval
    )

    # ==================== METADATA ====================
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    # ==================== RELATIONSHIPS ====================
    application = relationship("Application", back_populates="status_history")
    changer = relationship("User", foreign_keys=[changed_by])


class AdmissionCounter(Base):
    """Last admission number handed out per prefix and two-digit year."""
    __tablename__ = "admission_counters"

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        nullable=False,
    )
    prefix = Column(String(20), nullable=False)
    year = Column(String(2), nullable=False)
    current_number = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('prefix', 'year', name='uq_admission_counter_prefix_year'),
    )
