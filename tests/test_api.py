from uuid import uuid4

import pytest

from admissions.exceptions import DocumentGenerationError
from admissions.routers.public import application as public_application

API = "/api/v1"

APPLICANT = {
    "full_name": "Jane Wanjiku",
    "email": "jane@example.com",
    "phone": "0712345678",
    "course": "Computer Science",
    "location": "Nairobi",
    "prior_academic_grade": "B+",
}


@pytest.fixture
def course(client, auth_headers):
    response = client.post(
        f"{API}/admin/courses",
        json={"name": "Computer Science", "fee_balance": "5000", "fee_per_year": "45000"},
        headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def applicant(client, course):
    response = client.post(f"{API}/apply", json=APPLICANT)
    assert response.status_code == 201, response.text
    return response.json()


def _accept(client, auth_headers, application_id):
    return client.post(
        f"{API}/admin/applications/{application_id}/status",
        json={"status": "Accepted"},
        headers=auth_headers,
    )


# ==================== AUTH ====================

def test_login_rejects_wrong_password(client):
    response = client.post(f"{API}/auth/login", json={"email": "admin@example.com", "password": "nope"})
    assert response.status_code == 401


def test_admin_endpoints_require_token(client):
    assert client.get(f"{API}/admin/applications").status_code == 401


def test_me(client, auth_headers):
    response = client.get(f"{API}/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["email"] == "admin@example.com"


# ==================== PUBLIC ====================

def test_public_course_list(client, course):
    response = client.get(f"{API}/courses")
    assert response.status_code == 200
    assert [c["name"] for c in response.json()] == ["Computer Science"]


def test_apply_creates_pending_application_and_confirms(client, applicant, outbox, auth_headers, yy):
    assert applicant["status"] == "Pending"
    assert applicant["source"] == "online_application"
    assert applicant["admission_number"] == f"EAVI/1000/{yy}"

    assert len(outbox.attempts) == 1
    assert outbox.attempts[0]["subject"].startswith("Application Received")

    logs = client.get(f"{API}/admin/email-logs", headers=auth_headers).json()
    assert [(log["type"], log["status"]) for log in logs] == [("application_confirmation", "sent")]


def test_apply_rejects_duplicate_email(client, applicant):
    response = client.post(f"{API}/apply", json={**APPLICANT, "email": "JANE@example.com"})
    assert response.status_code == 409


def test_apply_validates_payload(client):
    response = client.post(f"{API}/apply", json={**APPLICANT, "full_name": "   "})
    assert response.status_code == 422


def test_download_pdf(client, applicant):
    response = client.get(f"{API}/download-pdf/{applicant['id']}")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="Jane_Wanjiku_Admission_Letter.pdf"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_download_pdf_for_non_latin1_name(client, course):
    created = client.post(
        f"{API}/apply",
        json={**APPLICANT, "full_name": "Wanjirũ Njoroge", "email": "wanjiru@example.com"},
    )
    assert created.status_code == 201, created.text

    response = client.get(f"{API}/download-pdf/{created.json()['id']}")
    assert response.status_code == 200
    assert response.content.startswith(b"%PDF")
    disposition = response.headers["content-disposition"]
    assert 'filename="Wanjiru_Njoroge_Admission_Letter.pdf"' in disposition
    assert "filename*=UTF-8''Wanjir%C5%A9_Njoroge_Admission_Letter.pdf" in disposition


@pytest.mark.parametrize("application_id", [str(uuid4()), "not-a-uuid"])
def test_download_pdf_unknown_student(client, application_id):
    response = client.get(f"{API}/download-pdf/{application_id}")
    assert response.status_code == 404
    assert response.json() == {"error": "Student not found"}


def test_download_pdf_generation_failure(client, applicant, monkeypatch):
    def broken(details):
        raise DocumentGenerationError("renderer crashed")

    monkeypatch.setattr(public_application, "generate_admission_letter", broken)
    response = client.get(f"{API}/download-pdf/{applicant['id']}")
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to generate PDF", "details": "renderer crashed"}


# ==================== ADMIN APPLICATIONS ====================

def test_manual_create_list_search_and_stats(client, auth_headers, yy):
    created = client.post(
        f"{API}/admin/applications",
        json={**APPLICANT, "email": None},
        headers=auth_headers,
    )
    assert created.status_code == 201, created.text
    assert created.json()["source"] == "manual"

    client.post(
        f"{API}/admin/applications",
        json={**APPLICANT, "full_name": "Otieno Brian", "email": "brian@example.com", "admission_number": f"EAVI/0042/{yy}"},
        headers=auth_headers,
    )

    listed = client.get(f"{API}/admin/applications", params={"q": "otieno"}, headers=auth_headers).json()
    assert [a["admission_number"] for a in listed] == [f"EAVI/0042/{yy}"]

    stats = client.get(f"{API}/admin/applications/stats", headers=auth_headers).json()
    assert stats == {"total": 2, "pending": 2, "accepted": 0, "rejected": 0}


def test_manual_create_rejects_malformed_or_taken_number(client, auth_headers, applicant):
    malformed = client.post(
        f"{API}/admin/applications",
        json={**APPLICANT, "email": "x@example.com", "admission_number": "EAVI-1"},
        headers=auth_headers,
    )
    assert malformed.status_code == 422

    taken = client.post(
        f"{API}/admin/applications",
        json={**APPLICANT, "email": "y@example.com", "admission_number": applicant["admission_number"]},
        headers=auth_headers,
    )
    assert taken.status_code == 409


def test_update_and_delete_application(client, auth_headers, applicant):
    url = f"{API}/admin/applications/{applicant['id']}"

    updated = client.patch(url, json={"location": "Kisumu"}, headers=auth_headers)
    assert updated.status_code == 200
    assert updated.json()["location"] == "Kisumu"

    assert client.delete(url, headers=auth_headers).status_code == 204
    missing = client.get(url, headers=auth_headers)
    assert missing.status_code == 404
    assert missing.headers["X-App-Error-Code"] == "not_found"


def test_accepting_reports_notifications(client, auth_headers, applicant, outbox):
    response = _accept(client, auth_headers, applicant["id"])
    assert response.status_code == 200, response.text

    body = response.json()
    assert body["previous_status"] == "Pending"
    assert body["status_changed"] is True
    assert body["application"]["status"] == "Accepted"
    assert body["notification"]["letter_generated"] is True
    assert body["notification"]["email_sent"] is True
    assert body["warning"] is None
    # confirmation on apply, then the admission letter
    assert len(outbox.attempts) == 2

    again = _accept(client, auth_headers, applicant["id"]).json()
    assert again["status_changed"] is False
    assert len(outbox.attempts) == 2

    history = client.get(f"{API}/admin/applications/{applicant['id']}/history", headers=auth_headers).json()
    assert [(h["from_status"], h["to_status"]) for h in history] == [("Pending", "Accepted")]
    assert history[0]["changed_by"] is not None


def test_email_failure_is_a_warning_not_an_error(client, auth_headers, applicant, outbox):
    outbox.fail = True
    response = _accept(client, auth_headers, applicant["id"])
    assert response.status_code == 200
    body = response.json()
    assert body["application"]["status"] == "Accepted"
    assert body["notification"]["email_sent"] is False
    assert "SMTP server unavailable" in body["warning"]


def test_accepted_to_rejected_is_refused(client, auth_headers, applicant):
    _accept(client, auth_headers, applicant["id"])
    response = client.post(
        f"{API}/admin/applications/{applicant['id']}/status",
        json={"status": "Rejected"},
        headers=auth_headers,
    )
    assert response.status_code == 409
    assert response.headers["X-App-Error-Code"] == "invalid_transition"


def test_resend_letter(client, auth_headers, applicant, outbox):
    url = f"{API}/admin/applications/{applicant['id']}/resend-letter"
    assert client.post(url, headers=auth_headers).status_code == 409

    _accept(client, auth_headers, applicant["id"])
    response = client.post(url, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["email_sent"] is True
    assert len(outbox.attempts) == 3


def test_compose_messages_and_contact_links(client, auth_headers, applicant):
    base = f"{API}/admin/applications/{applicant['id']}"

    sms = client.post(f"{base}/messages", json={"channel": "sms", "template": "fee_reminder"}, headers=auth_headers)
    assert sms.status_code == 200
    assert sms.json()["link"].startswith("sms:+254712345678?body=")
    assert "Jane Wanjiku" in sms.json()["body"]

    custom = client.post(
        f"{base}/messages",
        json={"channel": "whatsapp", "message": "Hello {name}, bring your ID"},
        headers=auth_headers,
    )
    assert custom.json()["body"] == "Hello Jane Wanjiku, bring your ID"
    assert custom.json()["link"].startswith("https://wa.me/254712345678?text=Hello%20Jane")

    unknown = client.post(f"{base}/messages", json={"channel": "sms", "template": "nope"}, headers=auth_headers)
    assert unknown.status_code == 404

    empty = client.post(f"{base}/messages", json={"channel": "sms"}, headers=auth_headers)
    assert empty.status_code == 422

    links = client.get(f"{base}/contact-links", headers=auth_headers).json()
    assert links["phone"] == "254712345678"
    assert links["tel"] == "tel:+254712345678"


def test_share_letter(client, auth_headers, applicant):
    url = f"{API}/admin/applications/{applicant['id']}/share-letter"
    assert client.post(url, headers=auth_headers).status_code == 409

    _accept(client, auth_headers, applicant["id"])
    shared = client.post(url, headers=auth_headers).json()
    assert f"https://admissions.example.com/api/v1/download-pdf/{applicant['id']}" in shared["body"]
    assert shared["link"].startswith("https://wa.me/254712345678?text=")


def test_message_templates(client, auth_headers):
    templates = client.get(f"{API}/admin/message-templates", headers=auth_headers).json()["templates"]
    assert "admission_approved" in templates


# ==================== COURSES & SETTINGS ====================

def test_duplicate_course_name(client, auth_headers, course):
    response = client.post(f"{API}/admin/courses", json={"name": "Computer Science"}, headers=auth_headers)
    assert response.status_code == 409


def test_settings_are_validated(client, auth_headers):
    bad = client.put(f"{API}/admin/settings/autoApprovalDelay", json={"value": "soon"}, headers=auth_headers)
    assert bad.status_code == 422

    date = client.put(f"{API}/admin/settings/reportingDate", json={"value": "2025-09-01"}, headers=auth_headers)
    assert date.status_code == 200
    assert client.get(f"{API}/admin/settings/reportingDate", headers=auth_headers).json()["value"] == "2025-09-01"


def test_switching_approval_mode_arms_and_cancels_timers(client, auth_headers, applicant):
    scheduler = client.app.state.scheduler

    on = client.put(f"{API}/admin/settings/approvalMode", json={"value": "Automatic"}, headers=auth_headers)
    assert on.status_code == 200
    assert on.json()["value"] == "automatic"
    assert [str(i) for i in scheduler.scheduled_ids()] == [applicant["id"]]

    off = client.put(f"{API}/admin/settings/approvalMode", json={"value": "manual"}, headers=auth_headers)
    assert off.status_code == 200
    assert scheduler.scheduled_ids() == []


def test_changing_delay_rearms_timers(client, auth_headers, applicant, monkeypatch):
    scheduler = client.app.state.scheduler
    armed = []
    monkeypatch.setattr(scheduler, "_arm", lambda application_id, delay: armed.append((str(application_id), delay)))

    client.put(f"{API}/admin/settings/autoApprovalDelay", json={"value": "30"}, headers=auth_headers)
    assert armed == []

    client.put(f"{API}/admin/settings/approvalMode", json={"value": "automatic"}, headers=auth_headers)
    assert len(armed) == 1

    response = client.put(f"{API}/admin/settings/autoApprovalDelay", json={"value": "60"}, headers=auth_headers)
    assert response.status_code == 200
    assert len(armed) == 2
    application_id, delay = armed[-1]
    assert application_id == applicant["id"]
    assert 59 * 60 < delay <= 60 * 60


def test_manual_decision_cancels_auto_approval(client, auth_headers, applicant):
    scheduler = client.app.state.scheduler
    client.put(f"{API}/admin/settings/approvalMode", json={"value": "automatic"}, headers=auth_headers)

    client.post(
        f"{API}/admin/applications/{applicant['id']}/status",
        json={"status": "Rejected"},
        headers=auth_headers,
    )
    assert scheduler.scheduled_ids() == []


# ==================== ADMISSION COUNTER ====================

def test_counter_endpoints(client, auth_headers, yy):
    base = f"{API}/admin/admission-counter"

    assert client.get(f"{base}/next", headers=auth_headers).json() == {"next_number": f"EAVI/1000/{yy}"}

    reset = client.post(f"{base}/reset", json={"starting_number": 1500}, headers=auth_headers).json()
    assert reset["success"] is True
    assert reset["next_number"] == f"EAVI/1500/{yy}"

    created = client.post(f"{API}/apply", json=APPLICANT).json()
    assert created["admission_number"] == f"EAVI/1500/{yy}"

    conflicts = client.get(f"{base}/conflicts", params={"starting_number": 1200}, headers=auth_headers).json()
    assert conflicts["would_conflict"] is True
    assert conflicts["suggested_starting"] == 1501

    status_body = client.get(base, headers=auth_headers).json()
    assert status_body["current_number"] == 1500
    assert status_body["next_number"] == f"EAVI/1501/{yy}"

    validation = client.get(
        f"{base}/validate", params={"admission_number": created["admission_number"]}, headers=auth_headers
    ).json()
    assert validation == {"admission_number": created["admission_number"], "well_formed": True, "available": False}
