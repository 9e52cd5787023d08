"""
Admission number allocation.

Format: {PREFIX}/{NNNN}/{YY}
Example: EAVI/0007/25
"""
import logging
import re
import time
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from admissions import settings
from admissions.database.models.application import (
    Application,
    ApplicationSource,
    ApplicationStatus,
    AdmissionCounter,
)
from admissions.database.models.setting import ADMISSION_STARTING_NUMBER
from admissions.exceptions import ConflictError, TransientStorageError
from admissions.schema.counter import ConflictReport, CounterResetResult, CounterStatus
from admissions.utils.admin_settings import get_starting_number, set_setting

logger = logging.getLogger(__name__)

ADMISSION_NUMBER_RE = re.compile(r"^(?P<prefix>[A-Za-z0-9-]+)/(?P<number>\d{4,})/(?P<year>\d{2})$")
MAX_ALLOCATION_ATTEMPTS = 3


def current_year_suffix(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%y")


def format_admission_number(prefix: str, number: int, year: Optional[str] = None) -> str:
    return f"{prefix}/{number:04d}/{year or current_year_suffix()}"


def parse_admission_number(value: str) -> Optional[Tuple[str, int, str]]:
    """Split an admission number into (prefix, number, year), or None if malformed."""
    match = ADMISSION_NUMBER_RE.match(value or "")
    if not match:
        return None
    return match.group("prefix"), int(match.group("number")), match.group("year")


def fallback_admission_number(prefix: str, year: Optional[str] = None) -> str:
    """
    Monotonic-clock-derived number used when storage cannot be read, in
    the range 1 to 9999.

    Not checked against issued numbers; a collision is caught by the unique
    constraint when the record is inserted.
    """
    return format_admission_number(prefix, time.monotonic_ns() // 1_000_000 % 9999 + 1, year)


def issued_numbers(db: Session, prefix: str, year: str) -> List[Tuple[int, str]]:
    """All (suffix, admission_number) pairs already issued for prefix and year."""
    rows = (
        db.query(Application.admission_number)
        .filter(Application.admission_number.like(f"{prefix}/%/{year}"))
        .all()
    )
    issued = []
    for (admission_number,) in rows:
        parsed = parse_admission_number(admission_number)
        if parsed and parsed[0] == prefix and parsed[2] == year:
            issued.append((parsed[1], admission_number))
    return sorted(issued)


def highest_existing(db: Session, prefix: str, year: str) -> int:
    issued = issued_numbers(db, prefix, year)
    return issued[-1][0] if issued else 0


def _get_counter(db: Session, prefix: str, year: str, lock: bool = False) -> Optional[AdmissionCounter]:
    query = db.query(AdmissionCounter).filter(
        AdmissionCounter.prefix == prefix,
        AdmissionCounter.year == year,
    )
    if lock:
        query = query.with_for_update()  # Row-level lock against concurrent allocation
    return query.first()


def _starting_number(db: Session, prefix: str, counter: Optional[AdmissionCounter]) -> int:
    """
    The admissionStartingNumber setting belongs to the default prefix. Other
    prefixes start from their own counter row once one exists.
    """
    if prefix == settings.ADMISSION_PREFIX:
        return get_starting_number(db)
    if counter is not None:
        return counter.current_number + 1
    return settings.DEFAULT_STARTING_NUMBER


def _next_number(db: Session, prefix: str, year: str, counter: Optional[AdmissionCounter]) -> int:
    candidates = [highest_existing(db, prefix, year) + 1, _starting_number(db, prefix, counter)]
    if counter is not None:
        candidates.append(counter.current_number + 1)
    return max(candidates)


def peek_next(db: Session, prefix: Optional[str] = None) -> str:
    """
    Compute the next admission number without reserving it.

    Read failures are not raised: a clock-derived fallback is returned so
    that creating an application is never blocked.
    """
    prefix = prefix or settings.ADMISSION_PREFIX
    year = current_year_suffix()
    try:
        counter = _get_counter(db, prefix, year)
        return format_admission_number(prefix, _next_number(db, prefix, year, counter), year)
    except SQLAlchemyError as e:
        logger.warning(f"peek_next: storage read failed for prefix {prefix}, using fallback: {e}")
        db.rollback()
        return fallback_admission_number(prefix, year)


def allocate_admission_number(db: Session, prefix: Optional[str] = None) -> str:
    """
    Reserve the next admission number for prefix and the current year.

    Locks the counter row (SELECT FOR UPDATE) and advances it. Does not
    commit: the caller commits together with the new application so the
    reservation and the record are atomic.
    """
    prefix = prefix or settings.ADMISSION_PREFIX
    year = current_year_suffix()
    try:
        counter = _get_counter(db, prefix, year, lock=True)
        next_number = _next_number(db, prefix, year, counter)
        if counter is None:
            counter = AdmissionCounter(prefix=prefix, year=year, current_number=next_number)
            db.add(counter)
        else:
            counter.current_number = next_number
        counter.last_updated = datetime.now(timezone.utc)
        db.flush()
        return format_admission_number(prefix, next_number, year)
    except IntegrityError:
        # Another transaction created the counter row first; caller retries
        raise
    except SQLAlchemyError as e:
        logger.warning(f"allocate_admission_number: storage failed for prefix {prefix}, using fallback: {e}")
        db.rollback()
        return fallback_admission_number(prefix, year)


def create_application_record(
    db: Session,
    fields: dict,
    source: ApplicationSource,
    admission_number: Optional[str] = None,
) -> Application:
    """
    Insert a Pending application with a freshly allocated admission number.

    A unique-constraint violation on insert means another writer took the
    number; allocation is retried up to MAX_ALLOCATION_ATTEMPTS times. An
    explicitly supplied admission number is never retried.
    """
    for attempt in range(1, MAX_ALLOCATION_ATTEMPTS + 1):
        try:
            number = admission_number or allocate_admission_number(db)
            application = Application(
                **fields,
                admission_number=number,
                status=ApplicationStatus.PENDING,
                source=source,
            )
            db.add(application)
            db.commit()
        except IntegrityError:
            db.rollback()
            if admission_number:
                raise ConflictError(f"Admission number {admission_number} is already in use")
            logger.warning(f"Admission number collision on attempt {attempt}, retrying")
            continue
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"create_application_record: insert failed for {fields.get('full_name')}: {e}")
            raise TransientStorageError("Could not save the application, please retry")
        db.refresh(application)
        logger.info(f"Created application {application.id} with admission number {application.admission_number}")
        return application

    raise ConflictError("Could not allocate a unique admission number, please retry")


def check_conflicts(db: Session, starting_number: int, prefix: Optional[str] = None) -> ConflictReport:
    """
    Report whether restarting the counter at starting_number would collide
    with, or fall below, numbers already issued this year.
    """
    prefix = prefix or settings.ADMISSION_PREFIX
    year = current_year_suffix()
    issued = issued_numbers(db, prefix, year)
    highest = issued[-1][0] if issued else 0
    would_conflict = starting_number <= highest
    return ConflictReport(
        would_conflict=would_conflict,
        highest_existing=highest,
        suggested_starting=highest + 1 if would_conflict else starting_number,
        conflicting_numbers=[number for suffix, number in issued if suffix >= starting_number],
    )


def reset_counter_safely(db: Session, starting_number: int, prefix: Optional[str] = None) -> CounterResetResult:
    """
    Restart the counter at starting_number, raising it to highest_existing + 1
    when the requested value would collide. Never fails on a collision; the
    result reports success=False instead.
    """
    prefix = prefix or settings.ADMISSION_PREFIX
    year = current_year_suffix()
    report = check_conflicts(db, starting_number, prefix)
    actual = report.suggested_starting

    counter = _get_counter(db, prefix, year, lock=True)
    if counter is None:
        counter = AdmissionCounter(prefix=prefix, year=year)
        db.add(counter)
    counter.current_number = actual - 1
    counter.last_updated = datetime.now(timezone.utc)
    if prefix == settings.ADMISSION_PREFIX:
        # The stored starting number only applies to the default prefix
        set_setting(db, ADMISSION_STARTING_NUMBER, str(actual), "Starting number for admission numbers")
    db.commit()

    next_number = format_admission_number(prefix, actual, year)
    if report.would_conflict:
        message = (
            f"Starting number {starting_number} conflicts with existing admission numbers "
            f"(highest is {report.highest_existing}). Counter set to {actual} instead."
        )
        logger.warning(f"reset_counter_safely: {message}")
    else:
        message = f"Admission counter reset. Next admission number is {next_number}."
        logger.info(f"reset_counter_safely: prefix {prefix} restarted at {actual}")

    return CounterResetResult(
        success=not report.would_conflict,
        message=message,
        actual_starting_number=actual,
        next_number=next_number,
    )


def counter_status(db: Session, prefix: Optional[str] = None) -> CounterStatus:
    prefix = prefix or settings.ADMISSION_PREFIX
    year = current_year_suffix()
    counter = _get_counter(db, prefix, year)
    return CounterStatus(
        prefix=prefix,
        year=year,
        current_number=counter.current_number if counter else 0,
        next_number=peek_next(db, prefix),
        last_updated=counter.last_updated if counter else None,
    )


def validate_admission_number(
    db: Session, admission_number: str, exclude_id: Optional[UUID] = None
) -> Tuple[bool, bool]:
    """
    Return (well_formed, available) for a manually entered admission number.
    """
    if parse_admission_number(admission_number) is None:
        return False, False
    query = db.query(Application.id).filter(Application.admission_number == admission_number)
    if exclude_id is not None:
        query = query.filter(Application.id != exclude_id)
    return True, query.first() is None


def email_in_use(db: Session, email: Optional[str], exclude_id: Optional[UUID] = None) -> bool:
    """Case-insensitive check for an email already used by another application."""
    if not email:
        return False
    query = db.query(Application.id).filter(func.lower(Application.email) == email.strip().lower())
    if exclude_id is not None:
        query = query.filter(Application.id != exclude_id)
    return query.first() is not None
