from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from admissions.database.config.db import get_db
from admissions.database.models.email_log import EmailLog
from admissions.schema.messaging import EmailLogResponse, MessageTemplates
from admissions.utils.messaging import SMS_TEMPLATES

notification_router = APIRouter(tags=["Admin - Notifications"])


@notification_router.get("/email-logs", response_model=list[EmailLogResponse])
def list_email_logs(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """Most recent email attempts, newest first."""
    return db.query(EmailLog).order_by(EmailLog.sent_at.desc()).limit(limit).all()


@notification_router.get("/message-templates", response_model=MessageTemplates)
def list_message_templates():
    return MessageTemplates(templates=SMS_TEMPLATES)
