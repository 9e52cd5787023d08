"""
Phone number normalization and device deep links (tel:, sms:, wa.me).
"""
import re
from typing import Optional
from urllib.parse import quote

from admissions import settings
from admissions.exceptions import ValidationError

# encodeURIComponent leaves these unescaped; SMS and WhatsApp clients expect the same
_URI_COMPONENT_SAFE = "-_.!~*'()"


def normalize_phone(
    raw: str,
    country_code: Optional[str] = None,
    pattern: Optional[str] = None,
) -> str:
    """
    Return the international digits-only form of a regional mobile number.

    Accepts 0712345678, 712345678, 254712345678 and +254 712 345 678 style
    input. Anything that does not match the configured mobile pattern after
    normalization raises ValidationError.
    """
    country_code = country_code or settings.PHONE_COUNTRY_CODE
    pattern = pattern or settings.PHONE_PATTERN

    cleaned = re.sub(r"[^\d+]", "", raw or "")
    digits = re.sub(r"\D", "", cleaned.lstrip("+"))

    if digits.startswith(country_code):
        normalized = digits
    elif digits.startswith("0"):
        normalized = country_code + digits[1:]
    elif len(digits) >= 9:
        normalized = country_code + digits
    else:
        normalized = digits

    if not re.fullmatch(pattern, normalized):
        raise ValidationError(
            f"Invalid phone number format: {raw!r}. Supported formats: "
            f"0712345678, 712345678, {country_code}712345678, +{country_code}712345678"
        )
    return normalized


def encode_message(body: str) -> str:
    return quote(body, safe=_URI_COMPONENT_SAFE)


def tel_link(phone: str) -> str:
    return f"tel:+{normalize_phone(phone)}"


def sms_link(phone: str, body: str) -> str:
    return f"sms:+{normalize_phone(phone)}?body={encode_message(body)}"


def whatsapp_link(phone: str, body: str) -> str:
    return f"https://wa.me/{normalize_phone(phone)}?text={encode_message(body)}"
