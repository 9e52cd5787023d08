from fastapi import APIRouter, Depends
from admissions.utils.auth import get_current_admin
from admissions.routers.admin.application import application_router
from admissions.routers.admin.course import course_router
from admissions.routers.admin.setting import setting_router
from admissions.routers.admin.counter import counter_router
from admissions.routers.admin.notification import notification_router

# Create admin router with prefix; every endpoint requires a bearer token
admin_router = APIRouter(prefix="/admin", dependencies=[Depends(get_current_admin)])

# Include all admin routers
admin_router.include_router(application_router)
admin_router.include_router(course_router)
admin_router.include_router(setting_router)
admin_router.include_router(counter_router)
admin_router.include_router(notification_router)

__all__ = ["admin_router"]
