# Import models in dependency order
from admissions.database.models.auth import User
from admissions.database.models.application import (
    Application,
    ApplicationSource,
    ApplicationStatus,
    ApplicationStatusHistory,
    AdmissionCounter,
)
from admissions.database.models.course import Course
from admissions.database.models.setting import AdminSetting
from admissions.database.models.email_log import EmailLog, EmailStatus, EmailType

__all__ = [
    "User",
    "Application",
    "ApplicationSource",
    "ApplicationStatus",
    "ApplicationStatusHistory",
    "AdmissionCounter",
    "Course",
    "AdminSetting",
    "EmailLog",
    "EmailStatus",
    "EmailType",
]
