import asyncio
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from admissions.database.models.application import Application, ApplicationStatus
from admissions.database.models.setting import APPROVAL_MODE, AUTO_APPROVAL_DELAY
from admissions.utils.admin_settings import set_setting
from admissions.workflow.engine import transition
from admissions.workflow.scheduler import AutoApprovalScheduler

pytestmark = pytest.mark.anyio


def _automatic_mode(db, delay_minutes="1"):
    set_setting(db, APPROVAL_MODE, "automatic")
    set_setting(db, AUTO_APPROVAL_DELAY, delay_minutes)
    db.commit()


def _status(db, application_id):
    db.expire_all()
    return db.query(Application).filter(Application.id == application_id).one().status


@pytest.fixture
async def scheduler():
    scheduler = AutoApprovalScheduler(stagger_seconds=0.05)
    yield scheduler
    scheduler.cancel_all()


async def test_auto_approval_fires_after_delay(db, make_application, scheduler, outbox, letters):
    _automatic_mode(db)
    application = make_application()

    scheduler.schedule(application.id, delay_minutes=0.001)
    assert scheduler.scheduled_ids() == [application.id]
    await asyncio.sleep(1.0)

    assert _status(db, application.id) == ApplicationStatus.ACCEPTED
    assert letters.calls == 1
    assert len(outbox.attempts) == 1
    assert scheduler.scheduled_ids() == []


async def test_manual_rejection_before_timer_wins(db, make_application, scheduler, outbox):
    _automatic_mode(db)
    application = make_application()

    scheduler.schedule(application.id, delay_minutes=0.003)
    await transition(db, application.id, ApplicationStatus.REJECTED)
    await asyncio.sleep(1.0)

    assert _status(db, application.id) == ApplicationStatus.REJECTED
    assert outbox.attempts == []


async def test_fire_is_a_noop_for_missing_or_decided_records(db, make_application, scheduler, outbox):
    _automatic_mode(db)
    assert await scheduler.fire(uuid4()) is None

    application = make_application()
    await transition(db, application.id, ApplicationStatus.REJECTED)
    assert await scheduler.fire(application.id) is None
    assert outbox.attempts == []


async def test_fire_skips_when_mode_is_manual(db, make_application, scheduler, outbox):
    application = make_application()

    assert await scheduler.fire(application.id) is None
    assert _status(db, application.id) == ApplicationStatus.PENDING


async def test_rescheduling_replaces_previous_timer(db, make_application, scheduler):
    application = make_application()

    scheduler.schedule(application.id, delay_minutes=10)
    scheduler.schedule(application.id, delay_minutes=10)

    assert scheduler.scheduled_ids() == [application.id]
    assert scheduler.cancel(application.id) is True
    assert scheduler.cancel(application.id) is False
    assert scheduler.scheduled_ids() == []


async def test_schedule_if_automatic(db, make_application, scheduler):
    application = make_application()
    assert scheduler.schedule_if_automatic(db, application) is False

    _automatic_mode(db)
    assert scheduler.schedule_if_automatic(db, application) is True
    assert scheduler.scheduled_ids() == [application.id]


async def test_initialize_in_manual_mode_schedules_nothing(db, make_application, scheduler):
    make_application()
    assert scheduler.initialize() == 0
    assert scheduler.scheduled_ids() == []


async def test_initialize_approves_overdue_backlog_and_waits_for_recent(db, make_application, scheduler, outbox, letters):
    _automatic_mode(db, delay_minutes="1")
    overdue = [make_application(email=f"student{i}@example.com") for i in range(3)]
    for application in overdue:
        application.applied_at = datetime.now(timezone.utc) - timedelta(minutes=5)
    db.commit()
    recent = make_application(email="recent@example.com")

    assert scheduler.initialize() == 4
    assert len(scheduler.scheduled_ids()) == 4
    await asyncio.sleep(1.5)

    for application in overdue:
        assert _status(db, application.id) == ApplicationStatus.ACCEPTED
    assert _status(db, recent.id) == ApplicationStatus.PENDING
    assert len(outbox.attempts) == 3
    assert scheduler.scheduled_ids() == [recent.id]
