import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from admissions import settings
from admissions.database.config.db import SessionLocal
from admissions.exceptions import AdmissionsError
from admissions.routers import api_router
from admissions.utils.auth import ensure_admin_user
from admissions.workflow.scheduler import AutoApprovalScheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    db = SessionLocal()
    try:
        ensure_admin_user(db)
    finally:
        db.close()

    scheduler = AutoApprovalScheduler()
    app.state.scheduler = scheduler
    scheduler.initialize()
    yield
    scheduler.cancel_all()


app = FastAPI(title="Admissions", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-App-Error-Code"],  # Expose custom headers
)


@app.exception_handler(AdmissionsError)
async def admissions_error_handler(request: Request, exc: AdmissionsError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers={"X-App-Error-Code": exc.error_code},
    )


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage is temporarily unavailable, please retry"},
        headers={"X-App-Error-Code": "storage_unavailable"},
    )


# Include the API router
app.include_router(api_router)
