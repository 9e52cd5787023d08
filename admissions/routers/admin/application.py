import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from admissions import settings
from admissions.database.config.db import get_db
from admissions.database.models.application import (
    Application,
    ApplicationSource,
    ApplicationStatus,
    ApplicationStatusHistory,
)
from admissions.database.models.auth import User
from admissions.schema.application import (
    ApplicationCreate,
    ApplicationResponse,
    ApplicationStats,
    ApplicationUpdate,
    NotificationReport,
    StatusHistoryResponse,
    StatusTransitionResponse,
    StatusUpdateRequest,
)
from admissions.schema.messaging import Channel, ComposedMessage, ComposeMessageRequest, ContactLinks
from admissions.utils.admission import (
    create_application_record,
    email_in_use,
    validate_admission_number,
)
from admissions.utils.auth import get_current_admin
from admissions.utils.messaging import SMS_TEMPLATES, compose_letter_share, render_template
from admissions.utils.phone import normalize_phone, sms_link, tel_link, whatsapp_link
from admissions.workflow.engine import get_application, resend_admission_letter, transition
from admissions.workflow.scheduler import AutoApprovalScheduler, get_scheduler

logger = logging.getLogger(__name__)

application_router = APIRouter(prefix="/applications", tags=["Admin - Applications"])


def _check_admission_number(db: Session, admission_number: str, exclude_id: Optional[UUID] = None):
    well_formed, available = validate_admission_number(db, admission_number, exclude_id)
    if not well_formed:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Admission number '{admission_number}' is not in PREFIX/NNNN/YY format",
        )
    if not available:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Admission number '{admission_number}' is already in use",
        )


def _check_email(db: Session, email: Optional[str], exclude_id: Optional[UUID] = None):
    if email_in_use(db, email, exclude_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Email '{email}' is already used by another application",
        )


# ==================== APPLICATION ENDPOINTS ====================

@application_router.get("", response_model=List[ApplicationResponse])
def list_applications(
    q: Optional[str] = Query(None, description="Search name, email, phone, course or admission number"),
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """
    List applications, newest first.
    """
    query = db.query(Application)
    if status_filter:
        query = query.filter(Application.status == status_filter)
    if q and q.strip():
        pattern = f"%{q.strip().lower()}%"
        query = query.filter(or_(
            func.lower(Application.full_name).like(pattern),
            func.lower(Application.email).like(pattern),
            func.lower(Application.course).like(pattern),
            func.lower(Application.admission_number).like(pattern),
            Application.phone.like(pattern),
        ))
    return query.order_by(Application.applied_at.desc()).offset(skip).limit(limit).all()


@application_router.get("/stats", response_model=ApplicationStats)
def get_application_stats(db: Session = Depends(get_db)):
    counts = dict(
        db.query(Application.status, func.count(Application.id))
        .group_by(Application.status)
        .all()
    )
    pending = counts.get(ApplicationStatus.PENDING, 0)
    accepted = counts.get(ApplicationStatus.ACCEPTED, 0)
    rejected = counts.get(ApplicationStatus.REJECTED, 0)
    return ApplicationStats(total=pending + accepted + rejected, pending=pending, accepted=accepted, rejected=rejected)


@application_router.get("/{application_id}", response_model=ApplicationResponse)
def get_application_detail(application_id: UUID, db: Session = Depends(get_db)):
    return get_application(db, application_id)


@application_router.post("", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def create_application(
    body: ApplicationCreate,
    db: Session = Depends(get_db),
    scheduler: AutoApprovalScheduler = Depends(get_scheduler),
):
    """
    Enter an application manually.

    The admission number is allocated unless one is supplied, in which case
    it must be well formed and unused.
    """
    _check_email(db, body.email)
    if body.admission_number:
        _check_admission_number(db, body.admission_number)

    fields = body.model_dump(exclude={"admission_number"})
    application = create_application_record(db, fields, ApplicationSource.MANUAL, body.admission_number)
    scheduler.schedule_if_automatic(db, application)
    return application


@application_router.patch("/{application_id}", response_model=ApplicationResponse)
def update_application(
    application_id: UUID,
    application_update: ApplicationUpdate,
    db: Session = Depends(get_db),
):
    """
    Edit an application's details. Status changes go through /status.
    """
    application = get_application(db, application_id)
    update_data = application_update.model_dump(exclude_unset=True)

    if update_data.get("email"):
        _check_email(db, update_data["email"], application_id)
    if update_data.get("admission_number") and update_data["admission_number"] != application.admission_number:
        _check_admission_number(db, update_data["admission_number"], application_id)

    for field, value in update_data.items():
        if value is None and field not in ("email", "location", "prior_academic_grade"):
            continue
        setattr(application, field, value)

    try:
        db.commit()
        db.refresh(application)
        return application
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Admission number already in use",
        )
    except Exception as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error updating application: {str(e)}",
        )


@application_router.delete("/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_application(
    application_id: UUID,
    db: Session = Depends(get_db),
    scheduler: AutoApprovalScheduler = Depends(get_scheduler),
):
    application = get_application(db, application_id)
    admission_number = application.admission_number
    scheduler.cancel(application_id)

    try:
        db.delete(application)
        db.commit()
        logger.info(f"Deleted application {application_id} ({admission_number})")
        return None
    except Exception as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error deleting application: {str(e)}",
        )


# ==================== STATUS ENDPOINTS ====================

@application_router.post("/{application_id}/status", response_model=StatusTransitionResponse)
async def update_application_status(
    application_id: UUID,
    body: StatusUpdateRequest,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
    scheduler: AutoApprovalScheduler = Depends(get_scheduler),
):
    """
    Change an application's status.

    Accepting generates the admission letter and emails it. Notification
    failures do not undo the status change; they are returned in
    `notification` and summarised in `warning`.
    """
    application, previous, report = await transition(
        db, application_id, body.status, changed_by=admin.id, notes=body.notes
    )
    changed = previous != application.status
    if changed:
        # A manual decision replaces any pending auto-approval
        scheduler.cancel(application_id)

    return StatusTransitionResponse(
        application=ApplicationResponse.model_validate(application),
        previous_status=previous,
        status_changed=changed,
        notification=report if changed else None,
        warning="; ".join(report.errors) if report.failed else None,
    )


@application_router.post("/{application_id}/resend-letter", response_model=NotificationReport)
async def resend_letter(application_id: UUID, db: Session = Depends(get_db)):
    return await resend_admission_letter(db, application_id)


@application_router.get("/{application_id}/history", response_model=List[StatusHistoryResponse])
def get_status_history(application_id: UUID, db: Session = Depends(get_db)):
    get_application(db, application_id)
    return (
        db.query(ApplicationStatusHistory)
        .filter(ApplicationStatusHistory.application_id == application_id)
        .order_by(ApplicationStatusHistory.created_at)
        .all()
    )


# ==================== MESSAGING ENDPOINTS ====================

@application_router.post("/{application_id}/messages", response_model=ComposedMessage)
def compose_message(
    application_id: UUID,
    body: ComposeMessageRequest,
    db: Session = Depends(get_db),
):
    """
    Compose an SMS or WhatsApp message from a built-in template or custom
    text and return the deep link that opens it on the admin's device.
    """
    application = get_application(db, application_id)

    if body.template:
        template = SMS_TEMPLATES.get(body.template)
        if template is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown message template '{body.template}'",
            )
    else:
        template = body.message.strip()

    text = render_template(template, application)
    link = sms_link(application.phone, text) if body.channel == Channel.SMS else whatsapp_link(application.phone, text)
    return ComposedMessage(channel=body.channel, phone=normalize_phone(application.phone), body=text, link=link)


@application_router.get("/{application_id}/contact-links", response_model=ContactLinks)
def get_contact_links(application_id: UUID, db: Session = Depends(get_db)):
    application = get_application(db, application_id)
    text = render_template(SMS_TEMPLATES["general_info"], application)
    return ContactLinks(
        phone=normalize_phone(application.phone),
        tel=tel_link(application.phone),
        sms=sms_link(application.phone, text),
        whatsapp=whatsapp_link(application.phone, text),
    )


@application_router.post("/{application_id}/share-letter", response_model=ComposedMessage)
def share_letter(application_id: UUID, db: Session = Depends(get_db)):
    """
    WhatsApp message carrying the public download link of the admission letter.
    """
    application = get_application(db, application_id)
    if application.status != ApplicationStatus.ACCEPTED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only accepted applications have an admission letter to share",
        )

    download_url = f"{settings.PUBLIC_BASE_URL.rstrip('/')}/api/v1/download-pdf/{application.id}"
    text = compose_letter_share(application, download_url)
    return ComposedMessage(
        channel=Channel.WHATSAPP,
        phone=normalize_phone(application.phone),
        body=text,
        link=whatsapp_link(application.phone, text),
    )
