"""
Message composition for email, SMS and WhatsApp.

Templates are plain strings with {name}, {course}, {admissionNumber},
{phone} and {email} placeholders. Rendering is a literal replace of every
occurrence; there are no conditionals or loops. Every function here is pure.
"""
import html
import re

from pydantic import BaseModel

from admissions import settings

PLACEHOLDERS = ("name", "course", "admissionNumber", "phone", "email")

_SIGNATURE = f"{settings.CAMPUS_ADDRESS}. Tel: {settings.CONTACT_PHONES}"

SMS_TEMPLATES = {
    "admission_approved": (
        f"{{name}}, {settings.INSTITUTE_SHORT_NAME} admission APPROVED! Course: {{course}}. "
        f"#: {{admissionNumber}}. Check email. {_SIGNATURE}"
    ),
    "document_ready": f"{{name}}, your documents are ready. Course: {{course}}. 8AM-5PM. {_SIGNATURE}",
    "request_info": (
        f"{{name}}, we need more details for your {{course}} application. "
        f"Please call us or reply to {{email}}. {_SIGNATURE}"
    ),
    "fee_reminder": f"{{name}}, fee reminder. Course: {{course}}. #: {{admissionNumber}}. {_SIGNATURE}",
    "interview_schedule": f"{{name}}, your interview is set. Course: {{course}}. {_SIGNATURE}",
    "orientation_reminder": f"{{name}}, orientation reminder. Course: {{course}}. Bring certs, ID, photos. {_SIGNATURE}",
    "general_info": (
        f"{settings.INSTITUTE_SHORT_NAME}: Hi {{name}}. Course: {{course}}. "
        f"#: {{admissionNumber}}. {_SIGNATURE}"
    ),
}


class EmailPayload(BaseModel):
    subject: str
    html: str


def placeholder_values(application) -> dict:
    return {
        "name": application.full_name or "",
        "course": application.course or "",
        "admissionNumber": application.admission_number or "",
        "phone": application.phone or "",
        "email": application.email or "",
    }


def render_template(template: str, application, escape: bool = False) -> str:
    """Substitute every placeholder occurrence with the record's value."""
    rendered = template
    for key, value in placeholder_values(application).items():
        rendered = rendered.replace("{" + key + "}", html.escape(value) if escape else value)
    return rendered


def letter_filename(application) -> str:
    stem = re.sub(r"\s+", "_", application.full_name.strip())
    return f"{stem}_Admission_Letter.pdf"


# ==================== EMAIL ====================

_EMAIL_LAYOUT = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{{title}}</title>
  <style>
    body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.6; color: #333; background: #f5f5f5; padding: 20px; }
    .container { max-width: 600px; margin: 0 auto; background: #fff; border-radius: 12px; overflow: hidden; }
    .header { background: #3b82f6; color: #fff; padding: 30px; text-align: center; }
    .content { padding: 30px; }
    .highlight { background: #e0f2fe; padding: 20px; border-radius: 8px; border-left: 4px solid #3b82f6; }
    .footer { padding: 20px 30px; font-size: 13px; color: #6b7280; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>INSTITUTE_NAME</h1></div>
    <div class="content">{{content}}</div>
    <div class="footer">CONTACT_LINE</div>
  </div>
</body>
</html>
"""

_CONFIRMATION_CONTENT = """
<h2>Application Received</h2>
<p>Dear {name},</p>
<p>Thank you for applying. We have received your application and it is now under review.</p>
<div class="highlight">
  <p><strong>Course:</strong> {course}</p>
  <p><strong>Reference:</strong> {admissionNumber}</p>
  <p><strong>Phone:</strong> {phone}</p>
</div>
<p>We will contact you at {email} or by phone once a decision has been made.</p>
"""

_ADMISSION_CONTENT = """
<h2>Congratulations, {name}!</h2>
<p>We are delighted to inform you that your application has been <strong>APPROVED</strong>.</p>
<div class="highlight">
  <p><strong>Course:</strong> {course}</p>
  <p><strong>Admission Number:</strong> {admissionNumber}</p>
</div>
<p>Your official admission letter is attached. Please bring a printed copy, your
certificates, ID and passport photos when you report.</p>
<ol>
  <li>Visit our office with the required documents</li>
  <li>Complete the fee payment</li>
  <li>Attend orientation</li>
</ol>
"""


def _wrap_email(title: str, content: str, application) -> str:
    layout = (
        _EMAIL_LAYOUT
        .replace("INSTITUTE_NAME", html.escape(settings.INSTITUTE_NAME))
        .replace("CONTACT_LINE", html.escape(f"{settings.CAMPUS_ADDRESS} | Tel: {settings.CONTACT_PHONES} | {settings.CONTACT_EMAIL}"))
        .replace("{{title}}", html.escape(title))
    )
    return layout.replace("{{content}}", render_template(content, application, escape=True))


def compose_application_confirmation(application) -> EmailPayload:
    subject = f"Application Received - {settings.INSTITUTE_NAME}"
    return EmailPayload(subject=subject, html=_wrap_email(subject, _CONFIRMATION_CONTENT, application))


def compose_admission_email(application) -> EmailPayload:
    subject = f"Congratulations! Your Admission to {settings.INSTITUTE_SHORT_NAME} - {application.admission_number}"
    return EmailPayload(subject=subject, html=_wrap_email(subject, _ADMISSION_CONTENT, application))


# ==================== WHATSAPP ====================

_APPROVAL_WHATSAPP = (
    "*CONGRATULATIONS!*\n\n"
    "Dear {name},\n\n"
    "*YOUR ADMISSION HAS BEEN APPROVED!*\n\n"
    "*Admission Details:*\n"
    "- Course: {course}\n"
    "- Admission Number: {admissionNumber}\n"
    "- Status: APPROVED\n\n"
    "*Next Steps:*\n"
    "1. Save your admission letter safely\n"
    "2. Visit our office with required documents\n"
    "3. Complete fee payment\n"
    "4. Attend orientation\n\n"
)

_LETTER_SHARE_WHATSAPP = (
    "*Official Admission Letter*\n\n"
    "Dear {name},\n\n"
    "Your admission letter for *{course}* is ready.\n"
    "- Admission #: {admissionNumber}\n\n"
    "*Download your admission letter:*\nDOWNLOAD_URL\n\n"
    "Keep this document for registration, fee payment and your first day of classes.\n\n"
)


def _whatsapp_footer() -> str:
    return f"Contact: {settings.CONTACT_PHONES}\nOffice: {settings.CAMPUS_ADDRESS}\n\nWelcome to the {settings.INSTITUTE_SHORT_NAME} family!"


def compose_approval_whatsapp(application) -> str:
    return render_template(_APPROVAL_WHATSAPP, application) + _whatsapp_footer()


def compose_letter_share(application, download_url: str) -> str:
    return render_template(_LETTER_SHARE_WHATSAPP, application).replace("DOWNLOAD_URL", download_url) + _whatsapp_footer()
