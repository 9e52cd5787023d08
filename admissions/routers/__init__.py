from fastapi import APIRouter
from admissions.routers.auth import auth_router
from admissions.routers.public.application import public_router
from admissions.routers.admin import admin_router

# Create API router with prefix
api_router = APIRouter(prefix="/api/v1")

# Include all routers
api_router.include_router(auth_router)
api_router.include_router(public_router)
api_router.include_router(admin_router)
