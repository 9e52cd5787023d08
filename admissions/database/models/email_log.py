import uuid
import enum
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Enum, Uuid
from sqlalchemy.sql import func
from admissions.database.config.db import Base


class EmailType(str, enum.Enum):
    APPLICATION_CONFIRMATION = "application_confirmation"
    ADMISSION_LETTER = "admission_letter"


class EmailStatus(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"


class EmailLog(Base):
    """One row per outbound email attempt."""
    __tablename__ = "email_logs"

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        nullable=False,
    )
    type = Column(Enum(*[e.value for e in EmailType], name="email_type"), nullable=False)
    to_email = Column(String(255), nullable=False)
    subject = Column(String(500), nullable=False)
    student_name = Column(String(255), nullable=False)
    application_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("applications.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    status = Column(Enum(*[e.value for e in EmailStatus], name="email_status"), nullable=False, index=True)
    message_id = Column(String(255), nullable=True)
    error = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
