import logging
import unicodedata
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from admissions.database.config.db import get_db
from admissions.database.models.application import Application, ApplicationSource
from admissions.database.models.course import Course
from admissions.schema.application import ApplicationResponse, PublicApplicationCreate
from admissions.schema.course import CourseResponse
from admissions.utils.admission import create_application_record, email_in_use
from admissions.utils.messaging import letter_filename
from admissions.utils.pdf import build_letter_details, generate_admission_letter
from admissions.workflow.delivery import send_application_confirmation
from admissions.workflow.scheduler import AutoApprovalScheduler, get_scheduler

logger = logging.getLogger(__name__)


def _attachment_disposition(filename: str) -> str:
    # Header values must be latin-1; the full name goes in filename* (RFC 5987)
    ascii_name = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    ascii_name = ascii_name.replace('"', "").replace("\\", "")
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


public_router = APIRouter(tags=["Public"])


@public_router.get("/courses", response_model=list[CourseResponse])
def list_courses(db: Session = Depends(get_db)):
    """Courses offered on the application form."""
    return db.query(Course).order_by(Course.name).all()


@public_router.post("/apply", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def apply(
    body: PublicApplicationCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    scheduler: AutoApprovalScheduler = Depends(get_scheduler),
):
    """
    Submit an online application.

    The record starts Pending with the next admission number. A confirmation
    email is sent in the background and, in automatic approval mode, an
    auto-approval is scheduled.
    """
    if email_in_use(db, body.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This email address has already been used for an application",
        )

    application = create_application_record(db, body.model_dump(), ApplicationSource.ONLINE_APPLICATION)

    if application.email:
        background_tasks.add_task(send_application_confirmation, application.id)
    scheduler.schedule_if_automatic(db, application)

    return application


@public_router.get("/download-pdf/{application_id}")
def download_pdf(application_id: str, db: Session = Depends(get_db)):
    """
    Re-generate and download the admission letter for an application.
    """
    try:
        application = db.query(Application).filter(Application.id == UUID(application_id)).first()
    except ValueError:
        application = None

    if not application:
        logger.warning(f"Letter download for unknown application {application_id}")
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Student not found"})

    try:
        pdf = generate_admission_letter(build_letter_details(db, application))
    except Exception as e:
        logger.error(f"Letter download for {application_id} failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to generate PDF", "details": str(e)},
        )

    filename = letter_filename(application)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": _attachment_disposition(filename),
            "Cache-Control": "private, no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0",
        },
    )
