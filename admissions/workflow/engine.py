"""
Application status transitions.

The status write is committed first; side effects registered for the edge
run afterwards and report their failures instead of undoing the change.
"""
import logging
from typing import Dict, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admissions.database.models.application import (
    Application,
    ApplicationStatus,
    ApplicationStatusHistory,
)
from admissions.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    TransientStorageError,
    ValidationError,
)
from admissions.schema.application import NotificationReport
from admissions.utils.messaging import compose_approval_whatsapp
from admissions.utils.phone import whatsapp_link
from admissions.workflow import delivery
from admissions.workflow import handlers  # noqa: F401  registers transition handlers
from admissions.workflow.handlers.config import handlers_for

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[ApplicationStatus, Set[ApplicationStatus]] = {
    ApplicationStatus.PENDING: {ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED},
    ApplicationStatus.ACCEPTED: {ApplicationStatus.PENDING},
    ApplicationStatus.REJECTED: {ApplicationStatus.PENDING},
}


def get_application(db: Session, application_id: UUID) -> Application:
    application = db.query(Application).filter(Application.id == application_id).first()
    if not application:
        raise NotFoundError(f"Application {application_id} not found")
    return application


def check_transition(from_status: ApplicationStatus, to_status: ApplicationStatus) -> None:
    if to_status not in ALLOWED_TRANSITIONS.get(from_status, set()):
        raise InvalidTransitionError(
            f"Cannot change status from {from_status.value} to {to_status.value}"
        )


async def transition(
    db: Session,
    application_id: UUID,
    new_status: ApplicationStatus,
    changed_by: Optional[UUID] = None,
    notes: Optional[str] = None,
) -> Tuple[Application, ApplicationStatus, NotificationReport]:
    """
    Move an application to new_status and run the edge's side effects.

    Returns (application, previous_status, report). Requesting the current
    status is a no-op with an empty report.
    """
    application = get_application(db, application_id)
    previous = application.status
    report = NotificationReport()

    if previous == new_status:
        logger.info(f"Application {application_id} already {new_status.value}, nothing to do")
        return application, previous, report

    check_transition(previous, new_status)

    try:
        # Compare-and-set on the status so two concurrent requests cannot both apply the edge
        updated = (
            db.query(Application)
            .filter(Application.id == application_id, Application.status == previous)
            .update({Application.status: new_status}, synchronize_session=False)
        )
        if updated:
            db.add(ApplicationStatusHistory(
                application_id=application_id,
                from_status=previous,
                to_status=new_status,
                notes=notes,
                changed_by=changed_by,
            ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Status update for application {application_id} failed: {e}")
        raise TransientStorageError("Could not update the application status, please retry")

    db.refresh(application)
    if not updated:
        if application.status == new_status:
            logger.info(f"Application {application_id} was moved to {new_status.value} concurrently")
            return application, new_status, report
        check_transition(application.status, new_status)
        raise InvalidTransitionError(f"Application {application_id} changed status concurrently, please retry")

    actor = changed_by or "system"
    logger.info(f"Application {application_id}: {previous.value} -> {new_status.value} by {actor}")

    for handler in handlers_for(previous, new_status):
        try:
            await handler(db, application, report)
        except Exception as e:
            logger.exception(f"Transition handler {handler.__name__} failed for application {application_id}")
            report.errors.append(f"{handler.__name__}: {e}")

    if report.failed:
        logger.warning(f"Application {application_id} is {new_status.value} with notification errors: {report.errors}")
    return application, previous, report


async def resend_admission_letter(db: Session, application_id: UUID) -> NotificationReport:
    """
    Regenerate the admission letter and email it again.

    Raises InvalidTransitionError unless the application is Accepted,
    ValidationError when it has no email, and NotificationDeliveryError
    when generation or sending fails.
    """
    application = get_application(db, application_id)
    if application.status != ApplicationStatus.ACCEPTED:
        raise InvalidTransitionError("Only accepted applications have an admission letter to resend")
    if not application.email:
        raise ValidationError("Application has no email address to send the admission letter to")

    report = NotificationReport()
    pdf = delivery.render_letter(db, application)
    report.letter_generated = True
    report.email_attempted = True
    report.message_id = await delivery.email_admission_letter(db, application, pdf)
    report.email_sent = True

    try:
        report.whatsapp_link = whatsapp_link(application.phone, compose_approval_whatsapp(application))
    except ValidationError as e:
        report.errors.append(e.message)

    logger.info(f"Resent admission letter for {application.admission_number} to {application.email}")
    return report
