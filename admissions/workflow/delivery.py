"""
Letter rendering and email delivery, with one email_logs row per attempt.
"""
import logging
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admissions.database.config.db import SessionLocal
from admissions.database.models.application import Application
from admissions.database.models.email_log import EmailLog, EmailStatus, EmailType
from admissions.exceptions import NotificationDeliveryError
from admissions.utils.messaging import (
    compose_admission_email,
    compose_application_confirmation,
    letter_filename,
)
from admissions.utils.pdf import build_letter_details, generate_admission_letter
from admissions.utils.smtp import send_mail

logger = logging.getLogger(__name__)


def record_email_log(
    db: Session,
    *,
    email_type: EmailType,
    application: Application,
    subject: str,
    status: EmailStatus,
    message_id: Optional[str] = None,
    error: Optional[str] = None,
) -> None:
    """Store one email attempt. A failure to log never masks the send outcome."""
    try:
        db.add(EmailLog(
            type=email_type.value,
            to_email=application.email,
            subject=subject,
            student_name=application.full_name,
            application_id=application.id,
            status=status.value,
            message_id=message_id,
            error=error,
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Could not write email log for application {application.id}: {e}")


def render_letter(db: Session, application: Application) -> bytes:
    """Build the admission letter PDF. Raises DocumentGenerationError."""
    details = build_letter_details(db, application)
    pdf = generate_admission_letter(details)
    logger.info(f"Generated admission letter for {application.admission_number} ({len(pdf)} bytes)")
    return pdf


async def email_admission_letter(db: Session, application: Application, pdf: bytes) -> str:
    """
    Send the admission email with the letter attached, once.

    Returns the message id. Raises NotificationDeliveryError on failure;
    either way the attempt is written to the email log.
    """
    payload = compose_admission_email(application)
    try:
        message_id = await send_mail(
            application.email,
            payload.subject,
            payload.html,
            attachments=[(letter_filename(application), pdf)],
        )
    except Exception as e:
        logger.error(f"Admission email to {application.email} for {application.admission_number} failed: {e}")
        record_email_log(
            db,
            email_type=EmailType.ADMISSION_LETTER,
            application=application,
            subject=payload.subject,
            status=EmailStatus.FAILED,
            error=str(e),
        )
        raise NotificationDeliveryError(f"Failed to send admission email to {application.email}: {e}")

    record_email_log(
        db,
        email_type=EmailType.ADMISSION_LETTER,
        application=application,
        subject=payload.subject,
        status=EmailStatus.SENT,
        message_id=message_id,
    )
    return message_id


async def send_application_confirmation(
    application_id: UUID,
    session_factory: Callable[[], Session] = SessionLocal,
) -> None:
    """
    Background task: email the applicant that their submission was received.

    Runs after the response is sent, so it opens its own session and only
    logs failures.
    """
    db = session_factory()
    try:
        application = db.query(Application).filter(Application.id == application_id).first()
        if application is None or not application.email:
            logger.info(f"No confirmation email for application {application_id}: record or email missing")
            return

        payload = compose_application_confirmation(application)
        try:
            message_id = await send_mail(application.email, payload.subject, payload.html)
        except Exception as e:
            logger.error(f"Confirmation email to {application.email} failed: {e}")
            record_email_log(
                db,
                email_type=EmailType.APPLICATION_CONFIRMATION,
                application=application,
                subject=payload.subject,
                status=EmailStatus.FAILED,
                error=str(e),
            )
            return

        record_email_log(
            db,
            email_type=EmailType.APPLICATION_CONFIRMATION,
            application=application,
            subject=payload.subject,
            status=EmailStatus.SENT,
            message_id=message_id,
        )
    finally:
        db.close()
