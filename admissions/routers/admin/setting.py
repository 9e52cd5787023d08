import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from admissions.database.config.db import get_db
from admissions.database.models.setting import AdminSetting, APPROVAL_MODE, AUTO_APPROVAL_DELAY
from admissions.schema.setting import SettingResponse, SettingUpsert, normalize_setting_value
from admissions.utils.admin_settings import get_setting, set_setting
from admissions.workflow.scheduler import AutoApprovalScheduler, get_scheduler

logger = logging.getLogger(__name__)

setting_router = APIRouter(prefix="/settings", tags=["Admin - Settings"])


@setting_router.get("", response_model=list[SettingResponse])
def list_settings(db: Session = Depends(get_db)):
    return db.query(AdminSetting).order_by(AdminSetting.key).all()


@setting_router.get("/{key}", response_model=SettingResponse)
def get_setting_detail(key: str, db: Session = Depends(get_db)):
    setting = get_setting(db, key)
    if not setting:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Setting '{key}' not found",
        )
    return setting


@setting_router.put("/{key}", response_model=SettingResponse)
async def upsert_setting(
    key: str,
    body: SettingUpsert,
    db: Session = Depends(get_db),
    scheduler: AutoApprovalScheduler = Depends(get_scheduler),
):
    """
    Create or update a setting.

    Switching approvalMode to automatic schedules every pending application;
    switching it to manual cancels all scheduled auto-approvals. Changing
    autoApprovalDelay re-arms the scheduled ones with the new delay.
    """
    try:
        value = normalize_setting_value(key, body.value)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )

    try:
        setting = set_setting(db, key, value, body.description)
        db.commit()
        db.refresh(setting)
    except Exception as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error saving setting: {str(e)}",
        )

    logger.info(f"Setting {key} set to {value!r}")
    if key in (APPROVAL_MODE, AUTO_APPROVAL_DELAY):
        # initialize() arms nothing in manual mode
        scheduler.cancel_all()
        scheduler.initialize()

    return setting
