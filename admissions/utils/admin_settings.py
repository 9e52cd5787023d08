"""
Typed access to the admin_settings key/value table.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from admissions import settings
from admissions.database.models.setting import (
    AdminSetting,
    ADMISSION_STARTING_NUMBER,
    APPROVAL_MODE,
    AUTO_APPROVAL_DELAY,
    REPORTING_DATE,
)

logger = logging.getLogger(__name__)

DEFAULT_AUTO_APPROVAL_DELAY = 5


def get_setting(db: Session, key: str) -> Optional[AdminSetting]:
    return db.query(AdminSetting).filter(AdminSetting.key == key).first()


def get_setting_value(db: Session, key: str, default: Optional[str] = None) -> Optional[str]:
    setting = get_setting(db, key)
    if setting is None or setting.value in (None, ""):
        return default
    return setting.value


def set_setting(db: Session, key: str, value: str, description: Optional[str] = None) -> AdminSetting:
    """
    Insert or update a setting by key. Flushes but does not commit.
    """
    setting = get_setting(db, key)
    if setting is None:
        setting = AdminSetting(key=key, value=value, description=description)
        db.add(setting)
    else:
        setting.value = value
        if description is not None:
            setting.description = description
    db.flush()
    return setting


def _int_setting(db: Session, key: str, default: int) -> int:
    raw = get_setting_value(db, key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Setting {key} has non-integer value {raw!r}, using {default}")
        return default


def get_starting_number(db: Session) -> int:
    return _int_setting(db, ADMISSION_STARTING_NUMBER, settings.DEFAULT_STARTING_NUMBER)


def is_auto_approval_enabled(db: Session) -> bool:
    return get_setting_value(db, APPROVAL_MODE, "manual") == "automatic"


def get_auto_approval_delay(db: Session) -> int:
    return _int_setting(db, AUTO_APPROVAL_DELAY, DEFAULT_AUTO_APPROVAL_DELAY)


def get_reporting_date(db: Session) -> Optional[str]:
    return get_setting_value(db, REPORTING_DATE)
