import pytest

from admissions.utils.smtp import send_mail

pytestmark = pytest.mark.anyio


async def test_send_mail_with_sending_suppressed_returns_reference():
    reference = await send_mail(
        "jane@example.com",
        "Admission letter",
        "<p>Welcome</p>",
        attachments=[("Jane_Admission_Letter.pdf", b"%PDF-1.4 test")],
    )
    assert reference.startswith("<")
    assert reference.endswith("@example.com>")
