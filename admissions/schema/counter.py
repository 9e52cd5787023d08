from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class ConflictReport(BaseModel):
    would_conflict: bool
    highest_existing: int
    suggested_starting: int
    conflicting_numbers: List[str] = Field(default_factory=list)


class CounterResetRequest(BaseModel):
    starting_number: int = Field(..., ge=1, description="First number to hand out")
    prefix: Optional[str] = Field(None, min_length=1, max_length=20, pattern=r"^[A-Za-z0-9-]+$")


class CounterResetResult(BaseModel):
    success: bool
    message: str
    actual_starting_number: int
    next_number: str


class CounterStatus(BaseModel):
    prefix: str
    year: str
    current_number: int
    next_number: str
    last_updated: Optional[datetime]


class NextNumberResponse(BaseModel):
    next_number: str


class AdmissionNumberValidation(BaseModel):
    admission_number: str
    well_formed: bool
    available: bool
