import uuid
from sqlalchemy import Column, String, DateTime, Numeric, Uuid
from sqlalchemy.sql import func
from admissions.database.config.db import Base


class Course(Base):
    """Courses offered, with the fee figures printed on admission letters."""
    __tablename__ = "courses"

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        nullable=False,
    )
    name = Column(String(255), unique=True, nullable=False, index=True)
    fee_balance = Column(Numeric(12, 2), nullable=False, default=0)  # minimum balance to maintain
    fee_per_year = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
