"""
Admission letter rendering with reportlab.
"""
import io
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Optional
from xml.sax.saxutils import escape

from pydantic import BaseModel
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy.orm import Session

from admissions import settings
from admissions.database.models.application import Application
from admissions.database.models.course import Course
from admissions.exceptions import DocumentGenerationError
from admissions.utils.admin_settings import get_reporting_date

logger = logging.getLogger(__name__)

CONTACT_OFFICE = "CONTACT OFFICE"

# Named fields of the letter, in the order they are printed in the details table
LETTER_FIELDS = (
    ("student_name", "Student Name"),
    ("course", "Course"),
    ("admission_number", "Admission Number"),
    ("reporting_date", "Reporting Date"),
    ("issue_date", "Date of Issue"),
    ("fee_balance", "Minimum Fee Balance"),
    ("fee_per_year", "Total Fee Per Year"),
)


class AdmissionLetterDetails(BaseModel):
    full_name: str
    course: str
    admission_number: str
    reporting_date: Optional[str] = None  # YYYY-MM-DD
    fee_balance: Optional[Decimal] = None
    fee_per_year: Optional[Decimal] = None


def format_reporting_date(value: Optional[str], today: Optional[date] = None) -> str:
    """YYYY-MM-DD -> DD/MM/YYYY; today's date when unset or unparseable."""
    if value:
        try:
            return datetime.strptime(value, "%Y-%m-%d").strftime("%d/%m/%Y")
        except ValueError:
            logger.warning(f"Reporting date {value!r} is not YYYY-MM-DD, using today's date")
    return (today or date.today()).strftime("%d/%m/%Y")


def format_fee(amount: Optional[Decimal]) -> str:
    if not amount:
        return CONTACT_OFFICE
    return f"{settings.FEE_CURRENCY} {amount:,.0f}"


def letter_field_values(details: AdmissionLetterDetails) -> Dict[str, str]:
    return {
        "student_name": details.full_name,
        "course": details.course,
        "admission_number": details.admission_number,
        "reporting_date": format_reporting_date(details.reporting_date),
        "issue_date": date.today().strftime("%d/%m/%Y"),
        "fee_balance": format_fee(details.fee_balance),
        "fee_per_year": format_fee(details.fee_per_year),
    }


def _styles():
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle("title", parent=base["Normal"], fontName="Helvetica-Bold", fontSize=20, alignment=1, leading=24),
        "sub": ParagraphStyle("sub", parent=base["Normal"], fontName="Helvetica", fontSize=10, alignment=1, leading=14),
        "heading": ParagraphStyle("heading", parent=base["Normal"], fontName="Helvetica-Bold", fontSize=14, alignment=1, leading=18),
        "body": ParagraphStyle("body", parent=base["Normal"], fontName="Helvetica", fontSize=11, leading=16, alignment=4),
        "cell": ParagraphStyle("cell", parent=base["Normal"], fontName="Helvetica", fontSize=11, leading=14),
    }


def _line():
    t = Table([[""]], colWidths=[17.0 * cm], rowHeights=[0.1 * cm])
    t.setStyle(TableStyle([("LINEABOVE", (0, 0), (-1, -1), 1.2, colors.black)]))
    return t


def generate_admission_letter(details: AdmissionLetterDetails) -> bytes:
    """
    Render the admission letter and return the PDF bytes.

    Fields with no value are logged and left off the letter.
    Raises DocumentGenerationError if rendering fails.
    """
    values = letter_field_values(details)
    rows = []
    for field, label in LETTER_FIELDS:
        value = values.get(field)
        if not value:
            logger.warning(f"Admission letter for {details.admission_number}: field {field} has no value, skipped")
            continue
        rows.append([label, value])

    s = _styles()
    buffer = io.BytesIO()
    try:
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=2 * cm,
            rightMargin=2 * cm,
            topMargin=1.5 * cm,
            bottomMargin=1.3 * cm,
            title=f"Admission Letter {details.admission_number}",
        )
        elements = [
            Paragraph(escape(settings.INSTITUTE_NAME), s["title"]),
            Spacer(1, 4),
            Paragraph(escape(f"{settings.CAMPUS_ADDRESS} | Tel: {settings.CONTACT_PHONES}"), s["sub"]),
            Spacer(1, 6),
            _line(),
            Spacer(1, 16),
            Paragraph("LETTER OF ADMISSION", s["heading"]),
            Spacer(1, 16),
            Paragraph(
                f"Dear <b>{escape(values['student_name'] or '')}</b>, we are pleased to offer you admission "
                f"to study <b>{escape(values['course'] or '')}</b>. Please report on the reporting date "
                "below with this letter, your academic certificates, national ID and two passport photos.",
                s["body"],
            ),
            Spacer(1, 16),
        ]
        table = Table(
            [[Paragraph(f"<b>{escape(label)}</b>", s["cell"]), Paragraph(escape(value), s["cell"])] for label, value in rows],
            colWidths=[6.0 * cm, 11.0 * cm],
        )
        table.setStyle(TableStyle([
            ("GRID", (0, 0), (-1, -1), 0.8, colors.black),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("BACKGROUND", (0, 0), (0, -1), colors.whitesmoke),
        ]))
        elements.append(table)
        elements.append(Spacer(1, 60))
        elements.append(Paragraph("______________________________<br/><b>Registrar, Admissions</b>", s["cell"]))
        doc.build(elements)
    except Exception as e:
        logger.error(f"Failed to render admission letter for {details.admission_number}: {e}")
        raise DocumentGenerationError(f"Failed to generate admission letter: {e}")

    return buffer.getvalue()


def build_letter_details(db: Session, application: Application) -> AdmissionLetterDetails:
    """Join the record with its course fees and the configured reporting date."""
    course = db.query(Course).filter(Course.name == application.course).first()
    if not course:
        logger.warning(f"Course {application.course!r} not found, letter fees will read {CONTACT_OFFICE}")

    return AdmissionLetterDetails(
        full_name=application.full_name,
        course=application.course,
        admission_number=application.admission_number,
        reporting_date=get_reporting_date(db),
        fee_balance=course.fee_balance if course else None,
        fee_per_year=course.fee_per_year if course else None,
    )
