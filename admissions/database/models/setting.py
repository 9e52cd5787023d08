import uuid
from sqlalchemy import Column, String, DateTime, Text, Uuid
from sqlalchemy.sql import func
from admissions.database.config.db import Base


# Keys read by the admission workflow
ADMISSION_STARTING_NUMBER = "admissionStartingNumber"
APPROVAL_MODE = "approvalMode"
AUTO_APPROVAL_DELAY = "autoApprovalDelay"
REPORTING_DATE = "reportingDate"


class AdminSetting(Base):
    """Key/value admin settings. At most one row per key."""
    __tablename__ = "admin_settings"

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        nullable=False,
    )
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
