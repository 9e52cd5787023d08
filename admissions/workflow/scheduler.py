"""
In-process auto-approval timers.

One asyncio task per pending application. Nothing is persisted: due times
are derived from applied_at, so initialize() re-arms outstanding work after
a restart.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from admissions import settings
from admissions.database.config.db import SessionLocal
from admissions.database.models.application import Application, ApplicationStatus
from admissions.exceptions import AdmissionsError
from admissions.schema.application import NotificationReport
from admissions.utils.admin_settings import get_auto_approval_delay, is_auto_approval_enabled
from admissions.workflow.engine import transition

logger = logging.getLogger(__name__)

AUTO_APPROVAL_NOTE = "Automatically approved"


class AutoApprovalScheduler:
    """Must be driven from the event loop thread (lifespan and async routes)."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        stagger_seconds: Optional[float] = None,
    ):
        self._session_factory = session_factory
        self._stagger_seconds = (
            settings.AUTO_APPROVAL_STAGGER_SECONDS if stagger_seconds is None else stagger_seconds
        )
        self._tasks: Dict[UUID, asyncio.Task] = {}

    def scheduled_ids(self) -> List[UUID]:
        return [application_id for application_id, task in self._tasks.items() if not task.done()]

    def schedule(self, application_id: UUID, delay_minutes: float) -> None:
        """Arm a one-shot approval. Re-arming replaces the previous timer."""
        self._arm(application_id, max(delay_minutes, 0) * 60)
        logger.info(f"Auto-approval for application {application_id} scheduled in {delay_minutes} minute(s)")

    def _arm(self, application_id: UUID, delay_seconds: float) -> None:
        self.cancel(application_id)
        task = asyncio.get_running_loop().create_task(self._run(application_id, delay_seconds))
        self._tasks[application_id] = task

    async def _run(self, application_id: UUID, delay_seconds: float) -> None:
        await asyncio.sleep(delay_seconds)
        if self._tasks.get(application_id) is asyncio.current_task():
            del self._tasks[application_id]
        try:
            await self.fire(application_id)
        except Exception:
            logger.exception(f"Auto-approval for application {application_id} failed")

    def cancel(self, application_id: UUID) -> bool:
        task = self._tasks.pop(application_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        logger.info(f"Auto-approval for application {application_id} cancelled")
        return True

    def cancel_all(self) -> int:
        count = 0
        for application_id in list(self._tasks):
            if self.cancel(application_id):
                count += 1
        if count:
            logger.info(f"Cancelled {count} pending auto-approval(s)")
        return count

    async def fire(self, application_id: UUID) -> Optional[NotificationReport]:
        """
        Approve the application if it is still Pending and automatic mode is on.

        Re-reads the record in a fresh session; anything else is a logged no-op.
        """
        db = self._session_factory()
        try:
            application = db.query(Application).filter(Application.id == application_id).first()
            if application is None:
                logger.info(f"Auto-approval skipped: application {application_id} no longer exists")
                return None
            if application.status != ApplicationStatus.PENDING:
                logger.info(
                    f"Auto-approval skipped: application {application_id} is {application.status.value}"
                )
                return None
            if not is_auto_approval_enabled(db):
                logger.info(f"Auto-approval skipped: approval mode is manual ({application_id})")
                return None

            try:
                _, _, report = await transition(
                    db, application_id, ApplicationStatus.ACCEPTED, notes=AUTO_APPROVAL_NOTE
                )
            except AdmissionsError as e:
                logger.warning(f"Auto-approval of application {application_id} not applied: {e.message}")
                return None
            logger.info(f"Application {application_id} auto-approved")
            return report
        finally:
            db.close()

    def schedule_if_automatic(self, db: Session, application: Application) -> bool:
        if application.status != ApplicationStatus.PENDING or not is_auto_approval_enabled(db):
            return False
        self.schedule(application.id, get_auto_approval_delay(db))
        return True

    def initialize(self) -> int:
        """
        Arm a timer for every Pending application when automatic mode is on.

        Overdue records are approved straight away, one every stagger_seconds,
        oldest first. Returns the number of timers armed.
        """
        db = self._session_factory()
        try:
            if not is_auto_approval_enabled(db):
                logger.info("Approval mode is manual, no auto-approvals scheduled")
                return 0

            delay_seconds = get_auto_approval_delay(db) * 60
            pending = (
                db.query(Application)
                .filter(Application.status == ApplicationStatus.PENDING)
                .order_by(Application.applied_at)
                .all()
            )
            now = datetime.now(timezone.utc)
            for index, application in enumerate(pending):
                applied_at = application.applied_at
                if applied_at.tzinfo is None:
                    applied_at = applied_at.replace(tzinfo=timezone.utc)
                remaining = max(delay_seconds - (now - applied_at).total_seconds(), 0)
                self._arm(application.id, remaining + index * self._stagger_seconds)
        finally:
            db.close()

        logger.info(f"Scheduled auto-approval for {len(pending)} pending application(s)")
        return len(pending)


def get_scheduler(request: Request) -> AutoApprovalScheduler:
    return request.app.state.scheduler
