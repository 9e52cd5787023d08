import logging

from sqlalchemy.orm import Session

from admissions.database.models.application import Application, ApplicationStatus
from admissions.exceptions import DocumentGenerationError, NotificationDeliveryError, ValidationError
from admissions.schema.application import NotificationReport
from admissions.utils.messaging import compose_approval_whatsapp
from admissions.utils.phone import whatsapp_link
from admissions.workflow import delivery
from admissions.workflow.handlers.config import on_transition

logger = logging.getLogger(__name__)


@on_transition(ApplicationStatus.PENDING, ApplicationStatus.ACCEPTED)
async def handle_acceptance(db: Session, application: Application, report: NotificationReport):
    """Generate the letter, email it if possible and prepare the WhatsApp approval link.

    Each step records its failure in the report and the remaining steps still run.
    """
    pdf = None
    try:
        pdf = delivery.render_letter(db, application)
        report.letter_generated = True
    except DocumentGenerationError as e:
        report.errors.append(e.message)

    if not application.email:
        logger.info(f"Application {application.id} has no email, admission letter not sent")
    elif pdf is not None:
        report.email_attempted = True
        try:
            report.message_id = await delivery.email_admission_letter(db, application, pdf)
            report.email_sent = True
        except NotificationDeliveryError as e:
            report.errors.append(e.message)

    try:
        report.whatsapp_link = whatsapp_link(application.phone, compose_approval_whatsapp(application))
    except ValidationError as e:
        logger.warning(f"No WhatsApp link for application {application.id}: {e.message}")
        report.errors.append(e.message)
