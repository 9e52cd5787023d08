from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from admissions.database.config.db import get_db
from admissions.schema.counter import (
    AdmissionNumberValidation,
    ConflictReport,
    CounterResetRequest,
    CounterResetResult,
    CounterStatus,
    NextNumberResponse,
)
from admissions.utils.admission import (
    check_conflicts,
    counter_status,
    peek_next,
    reset_counter_safely,
    validate_admission_number,
)

counter_router = APIRouter(prefix="/admission-counter", tags=["Admin - Admission Counter"])


@counter_router.get("", response_model=CounterStatus)
def get_counter_status(
    prefix: Optional[str] = Query(None, max_length=20),
    db: Session = Depends(get_db),
):
    return counter_status(db, prefix)


@counter_router.get("/next", response_model=NextNumberResponse)
def get_next_number(
    prefix: Optional[str] = Query(None, max_length=20),
    db: Session = Depends(get_db),
):
    """Preview the next admission number without reserving it."""
    return NextNumberResponse(next_number=peek_next(db, prefix))


@counter_router.get("/conflicts", response_model=ConflictReport)
def get_conflicts(
    starting_number: int = Query(..., ge=1),
    prefix: Optional[str] = Query(None, max_length=20),
    db: Session = Depends(get_db),
):
    return check_conflicts(db, starting_number, prefix)


@counter_router.post("/reset", response_model=CounterResetResult)
def reset_counter(
    body: CounterResetRequest,
    db: Session = Depends(get_db),
):
    """
    Restart numbering. A starting number that collides with issued numbers
    is raised past them and the result reports success=false.
    """
    return reset_counter_safely(db, body.starting_number, body.prefix)


@counter_router.get("/validate", response_model=AdmissionNumberValidation)
def validate_number(
    admission_number: str = Query(..., max_length=50),
    db: Session = Depends(get_db),
):
    well_formed, available = validate_admission_number(db, admission_number)
    return AdmissionNumberValidation(admission_number=admission_number, well_formed=well_formed, available=available)
