import os

# Must be set before the admissions package reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MAIL_SUPPRESS_SEND"] = "true"
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["ADMIN_PASSWORD"] = "correct-horse-battery"
os.environ["PUBLIC_BASE_URL"] = "https://admissions.example.com"

import pytest
from fastapi.testclient import TestClient

import admissions.database.models  # noqa: F401
from admissions.database.config.db import Base, SessionLocal, engine
from admissions.database.models.application import ApplicationSource
from admissions.main import app
from admissions.utils.admission import create_application_record, current_year_suffix
from admissions.workflow import delivery


class Outbox:
    """Stands in for the SMTP transport and records every attempt."""

    def __init__(self):
        self.attempts = []
        self.fail = False

    async def send(self, recipients, subject, body, *, subtype=None, attachments=None):
        self.attempts.append({
            "recipients": recipients,
            "subject": subject,
            "body": body,
            "attachments": attachments or [],
        })
        if self.fail:
            raise ConnectionError("SMTP server unavailable")
        return f"<{len(self.attempts)}@test.example.com>"


class LetterCounter:
    def __init__(self, render):
        self.calls = 0
        self._render = render

    def __call__(self, details):
        self.calls += 1
        return self._render(details)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    box = Outbox()
    monkeypatch.setattr(delivery, "send_mail", box.send)
    return box


@pytest.fixture
def letters(monkeypatch):
    counter = LetterCounter(delivery.generate_admission_letter)
    monkeypatch.setattr(delivery, "generate_admission_letter", counter)
    return counter


@pytest.fixture
def db(tables):
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def yy():
    return current_year_suffix()


@pytest.fixture
def make_application(db):
    def _make(**overrides):
        fields = {
            "full_name": "Jane Wanjiku",
            "email": "jane@example.com",
            "phone": "0712345678",
            "course": "Computer Science",
        }
        fields.update(overrides)
        source = fields.pop("source", ApplicationSource.MANUAL)
        admission_number = fields.pop("admission_number", None)
        return create_application_record(db, fields, source, admission_number)

    return _make


@pytest.fixture
def client(tables):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers(client):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "admin@example.com", "password": "correct-horse-battery"},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
