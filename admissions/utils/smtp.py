"""
SMTP email utility using fastapi-mail.
"""
import io
import logging
from email.utils import make_msgid
from typing import List, Optional, Tuple, Union

from fastapi import UploadFile
from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType

from admissions import settings

logger = logging.getLogger(__name__)

# (filename, content) pairs; only PDF attachments are sent
Attachment = Tuple[str, bytes]


def _get_mail_config() -> ConnectionConfig:
    """Build ConnectionConfig from application settings."""
    return ConnectionConfig(
        MAIL_USERNAME=settings.MAIL_USERNAME,
        MAIL_PASSWORD=settings.MAIL_PASSWORD,
        MAIL_FROM=settings.MAIL_FROM,
        MAIL_FROM_NAME=settings.MAIL_FROM_NAME,
        MAIL_PORT=settings.MAIL_PORT,
        MAIL_SERVER=settings.MAIL_SERVER,
        MAIL_STARTTLS=settings.MAIL_STARTTLS,
        MAIL_SSL_TLS=settings.MAIL_SSL_TLS,
        USE_CREDENTIALS=bool(settings.MAIL_USERNAME),
        SUPPRESS_SEND=1 if settings.MAIL_SUPPRESS_SEND else 0,
    )


def _pdf_attachment(filename: str, content: bytes) -> dict:
    return {
        "file": UploadFile(file=io.BytesIO(content), filename=filename),
        "mime_type": "application",
        "mime_subtype": "pdf",
    }


async def send_mail(
    recipients: Union[List[str], str],
    subject: str,
    body: str,
    *,
    subtype: MessageType = MessageType.html,
    attachments: Optional[List[Attachment]] = None,
) -> str:
    """
    Send an email using the configured SMTP settings.

    Args:
        recipients: Email address(es) to send to (list or single string).
        subject: Email subject.
        body: Email body (plain text or HTML depending on subtype).
        subtype: MessageType.html or MessageType.plain (default: html).
        attachments: Optional (filename, pdf bytes) pairs.

    Returns:
        The reference stamped in the X-Entity-Ref-ID header, kept in the
        email log to trace the message.
    """
    if isinstance(recipients, str):
        recipients = [recipients]
    message_id = make_msgid(domain=settings.MAIL_FROM.split("@")[-1])
    message = MessageSchema(
        subject=subject,
        recipients=recipients,
        body=body,
        subtype=subtype,
        headers={"X-Entity-Ref-ID": message_id},
        attachments=[_pdf_attachment(name, content) for name, content in attachments or []],
    )
    fm = FastMail(_get_mail_config())
    logger.info(f"Sending email to {recipients} with subject {subject!r}")
    await fm.send_message(message)
    logger.info(f"Email sent to {recipients}, message id {message_id}")
    return message_id
