from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID
from datetime import datetime, date

from admissions.database.models.setting import (
    ADMISSION_STARTING_NUMBER,
    APPROVAL_MODE,
    AUTO_APPROVAL_DELAY,
    REPORTING_DATE,
)

APPROVAL_MODES = ("manual", "automatic")


class SettingUpsert(BaseModel):
    value: str = Field(..., max_length=1000)
    description: Optional[str] = None


class SettingResponse(BaseModel):
    id: UUID
    key: str
    value: str
    description: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


def _positive_int(value: str) -> str:
    number = int(value)
    if number < 1:
        raise ValueError("must be a positive whole number")
    return str(number)


def _approval_mode(value: str) -> str:
    value = value.strip().lower()
    if value not in APPROVAL_MODES:
        raise ValueError(f"must be one of: {', '.join(APPROVAL_MODES)}")
    return value


def _iso_date(value: str) -> str:
    if not value:
        return value
    return date.fromisoformat(value.strip()).isoformat()


_VALIDATORS = {
    ADMISSION_STARTING_NUMBER: _positive_int,
    APPROVAL_MODE: _approval_mode,
    AUTO_APPROVAL_DELAY: _positive_int,
    REPORTING_DATE: _iso_date,
}


def normalize_setting_value(key: str, value: str) -> str:
    """
    Validate and normalize a value for keys the workflow reads.
    Other keys are stored as given. Raises ValueError on bad input.
    """
    validator = _VALIDATORS.get(key)
    if validator is None:
        return value
    try:
        return validator(value)
    except ValueError as e:
        raise ValueError(f"Invalid value for {key}: {e}")
