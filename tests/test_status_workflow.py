from uuid import uuid4

import pytest

from admissions.database.models.application import ApplicationStatus, ApplicationStatusHistory
from admissions.database.models.email_log import EmailLog
from admissions.exceptions import (
    DocumentGenerationError,
    InvalidTransitionError,
    NotFoundError,
    NotificationDeliveryError,
    ValidationError,
)
from admissions.workflow import delivery
from admissions.workflow.engine import resend_admission_letter, transition

pytestmark = pytest.mark.anyio


async def test_acceptance_generates_one_letter_and_sends_one_email(db, make_application, outbox, letters):
    application = make_application()

    application, previous, report = await transition(db, application.id, ApplicationStatus.ACCEPTED)

    assert previous == ApplicationStatus.PENDING
    assert application.status == ApplicationStatus.ACCEPTED
    assert report.letter_generated and report.email_attempted and report.email_sent
    assert report.errors == []
    assert report.whatsapp_link.startswith("https://wa.me/254712345678?text=")
    assert letters.calls == 1
    assert len(outbox.attempts) == 1
    attempt = outbox.attempts[0]
    assert attempt["recipients"] == "jane@example.com"
    assert attempt["attachments"][0][0] == "Jane_Wanjiku_Admission_Letter.pdf"
    assert attempt["attachments"][0][1].startswith(b"%PDF")

    log = db.query(EmailLog).one()
    assert log.type == "admission_letter"
    assert log.status == "sent"
    assert log.message_id == report.message_id

    history = db.query(ApplicationStatusHistory).one()
    assert history.from_status == ApplicationStatus.PENDING
    assert history.to_status == ApplicationStatus.ACCEPTED
    assert history.changed_by is None


async def test_repeated_acceptance_is_a_noop(db, make_application, outbox, letters):
    application = make_application()
    await transition(db, application.id, ApplicationStatus.ACCEPTED)

    _, previous, report = await transition(db, application.id, ApplicationStatus.ACCEPTED)

    assert previous == ApplicationStatus.ACCEPTED
    assert not report.letter_generated and not report.email_attempted
    assert letters.calls == 1
    assert len(outbox.attempts) == 1
    assert db.query(ApplicationStatusHistory).count() == 1


async def test_email_failure_does_not_undo_acceptance(db, make_application, outbox, letters):
    outbox.fail = True
    application = make_application()

    application, _, report = await transition(db, application.id, ApplicationStatus.ACCEPTED)

    assert application.status == ApplicationStatus.ACCEPTED
    assert report.letter_generated
    assert report.email_attempted and not report.email_sent
    assert report.failed
    assert "SMTP server unavailable" in report.errors[0]
    assert len(outbox.attempts) == 1
    log = db.query(EmailLog).one()
    assert log.status == "failed"
    assert "SMTP server unavailable" in log.error


async def test_letter_failure_skips_email(db, make_application, outbox, monkeypatch):
    def broken(details):
        raise DocumentGenerationError("Failed to generate admission letter: no fonts")

    monkeypatch.setattr(delivery, "generate_admission_letter", broken)
    application = make_application()

    application, _, report = await transition(db, application.id, ApplicationStatus.ACCEPTED)

    assert application.status == ApplicationStatus.ACCEPTED
    assert not report.letter_generated
    assert not report.email_attempted
    assert outbox.attempts == []
    assert report.whatsapp_link is not None


async def test_acceptance_without_email(db, make_application, outbox, letters):
    application = make_application(email=None)

    _, _, report = await transition(db, application.id, ApplicationStatus.ACCEPTED)

    assert report.letter_generated
    assert not report.email_attempted
    assert not report.failed
    assert outbox.attempts == []


async def test_invalid_phone_is_reported_not_raised(db, make_application, outbox, letters):
    application = make_application(phone="12345")

    application, _, report = await transition(db, application.id, ApplicationStatus.ACCEPTED)

    assert application.status == ApplicationStatus.ACCEPTED
    assert report.email_sent
    assert report.whatsapp_link is None
    assert any("Invalid phone number" in error for error in report.errors)


async def test_accepted_cannot_move_directly_to_rejected(db, make_application, letters):
    application = make_application()
    await transition(db, application.id, ApplicationStatus.ACCEPTED)

    with pytest.raises(InvalidTransitionError):
        await transition(db, application.id, ApplicationStatus.REJECTED)

    db.refresh(application)
    assert application.status == ApplicationStatus.ACCEPTED


async def test_reject_and_reopen_send_nothing(db, make_application, outbox):
    application = make_application()
    admin_note = "Incomplete documents"

    await transition(db, application.id, ApplicationStatus.REJECTED, notes=admin_note)
    application, previous, _ = await transition(db, application.id, ApplicationStatus.PENDING)

    assert previous == ApplicationStatus.REJECTED
    assert application.status == ApplicationStatus.PENDING
    assert outbox.attempts == []
    history = db.query(ApplicationStatusHistory).order_by(ApplicationStatusHistory.created_at).all()
    assert [(h.from_status, h.to_status) for h in history] == [
        (ApplicationStatus.PENDING, ApplicationStatus.REJECTED),
        (ApplicationStatus.REJECTED, ApplicationStatus.PENDING),
    ]
    assert history[0].notes == admin_note


async def test_transition_unknown_application(db):
    with pytest.raises(NotFoundError):
        await transition(db, uuid4(), ApplicationStatus.ACCEPTED)


async def test_resend_sends_again(db, make_application, outbox, letters):
    application = make_application()
    await transition(db, application.id, ApplicationStatus.ACCEPTED)

    report = await resend_admission_letter(db, application.id)

    assert report.email_sent
    assert letters.calls == 2
    assert len(outbox.attempts) == 2
    assert db.query(EmailLog).count() == 2


async def test_resend_requires_accepted(db, make_application):
    application = make_application()
    with pytest.raises(InvalidTransitionError):
        await resend_admission_letter(db, application.id)


async def test_resend_requires_email(db, make_application, letters):
    application = make_application(email=None)
    await transition(db, application.id, ApplicationStatus.ACCEPTED)
    with pytest.raises(ValidationError):
        await resend_admission_letter(db, application.id)


async def test_resend_delivery_failure_raises(db, make_application, outbox, letters):
    application = make_application()
    await transition(db, application.id, ApplicationStatus.ACCEPTED)
    outbox.fail = True

    with pytest.raises(NotificationDeliveryError):
        await resend_admission_letter(db, application.id)
