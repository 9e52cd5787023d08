from pydantic import BaseModel, Field, model_validator
from typing import Dict, Optional
from uuid import UUID
from datetime import datetime
from enum import Enum


class Channel(str, Enum):
    SMS = "sms"
    WHATSAPP = "whatsapp"


class ComposeMessageRequest(BaseModel):
    """Either a built-in template key or custom text (which may use placeholders)."""
    channel: Channel
    template: Optional[str] = None
    message: Optional[str] = Field(None, max_length=4000)

    @model_validator(mode="after")
    def template_or_message(self):
        if not self.template and not (self.message and self.message.strip()):
            raise ValueError("Provide a template or a message")
        return self


class ComposedMessage(BaseModel):
    channel: Channel
    phone: str
    body: str
    link: str


class ContactLinks(BaseModel):
    phone: str
    tel: str
    sms: str
    whatsapp: str


class MessageTemplates(BaseModel):
    templates: Dict[str, str]


class EmailLogResponse(BaseModel):
    id: UUID
    type: str
    to_email: str
    subject: str
    student_name: str
    application_id: Optional[UUID]
    status: str
    message_id: Optional[str]
    error: Optional[str]
    sent_at: Optional[datetime]

    class Config:
        from_attributes = True
