"""
Field validators for case profiles and uploads.

Every validator is a pure function: it returns None when the value passes and a
human-readable failure reason otherwise.
"""
import datetime
import math
import re
from typing import Any, Optional

from pydantic import AnyUrl, TypeAdapter, ValidationError

DEFAULT_MAX_FILE_SIZE_BYTES = 16 * 1024 * 1024
MINIMUM_AGE_YEARS = 18
MINIMUM_PHONE_LENGTH = 10

ALLOWED_MEDIA_TYPES = frozenset({
    "application/pdf",
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/gif",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
})

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_CHARS_RE = re.compile(r"^[\d\s\-+()]+$")
_PHONE_SEPARATORS_RE = re.compile(r"[\s\-()]")
_TAX_ID_RE = re.compile(r"^[A-Za-z0-9-]{5,20}$")

POSTAL_CODE_PATTERNS = {
    "US": re.compile(r"^\d{5}(-\d{4})?$"),
    "UK": re.compile(r"^[A-Z]{1,2}\d[A-Z\d]?\s?\d[A-Z]{2}$", re.IGNORECASE),
    "GB": re.compile(r"^[A-Z]{1,2}\d[A-Z\d]?\s?\d[A-Z]{2}$", re.IGNORECASE),
    "CA": re.compile(r"^[A-Z]\d[A-Z]\s?\d[A-Z]\d$", re.IGNORECASE),
}
FALLBACK_POSTAL_CODE_PATTERN = re.compile(r"^[A-Za-z0-9\s-]{3,10}$")

_url_adapter = TypeAdapter(AnyUrl)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def validate_required(value: Any, field_name: str) -> Optional[str]:
    if is_blank(value):
        return f"{field_name} is required"
    return None


def validate_email(value: Optional[str]) -> Optional[str]:
    if is_blank(value):
        return "Email is required"
    if not _EMAIL_RE.fullmatch(value):
        return "Invalid email format"
    return None


def validate_phone_number(value: Optional[str]) -> Optional[str]:
    if is_blank(value):
        return "Phone number is required"
    if not _PHONE_CHARS_RE.fullmatch(value):
        return "Invalid phone number format"
    if len(_PHONE_SEPARATORS_RE.sub("", value)) < MINIMUM_PHONE_LENGTH:
        return "Phone number is too short"
    return None


def parse_date(value: Any) -> Optional[datetime.date]:
    """Accepts a date, a datetime or an ISO-8601 date/timestamp string; returns None if unparseable."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return datetime.date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


def age_on(birth_date: datetime.date, today: datetime.date) -> int:
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def validate_date_of_birth(value: Any, today: Optional[datetime.date] = None) -> Optional[str]:
    if is_blank(value):
        return "Date of birth is required"
    birth_date = parse_date(value)
    if birth_date is None:
        return "Invalid date format"
    today = today or datetime.date.today()
    if birth_date > today:
        return "Date of birth cannot be in the future"
    if age_on(birth_date, today) < MINIMUM_AGE_YEARS:
        return f"Must be at least {MINIMUM_AGE_YEARS} years old"
    return None


def parse_percentage(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if math.isnan(number):
        return None
    return number


def validate_percentage(value: Any) -> Optional[str]:
    number = parse_percentage(value)
    if number is None:
        return "Must be a valid number"
    if number < 0 or number > 100:
        return "Must be between 0 and 100"
    return None


def validate_postal_code(value: Optional[str], country: Optional[str] = "US") -> Optional[str]:
    if is_blank(value):
        return "Postal code is required"
    country_code = (country or "US").strip().upper()
    pattern = POSTAL_CODE_PATTERNS.get(country_code, FALLBACK_POSTAL_CODE_PATTERN)
    if not pattern.fullmatch(value):
        return "Invalid postal code format"
    return None


def validate_url(value: Optional[str]) -> Optional[str]:
    if is_blank(value):
        return None # Optional field
    try:
        parsed = _url_adapter.validate_python(value.strip())
    except ValidationError:
        return "Invalid URL format"
    if not parsed.scheme:
        return "Invalid URL format"
    return None


def validate_tax_id(value: Optional[str]) -> Optional[str]:
    if is_blank(value):
        return "Tax ID is required"
    if not _TAX_ID_RE.fullmatch(value):
        return "Invalid Tax ID format"
    return None


def validate_file(
    media_type: Optional[str],
    size_bytes: Optional[int],
    max_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES,
    allowed_media_types: frozenset = ALLOWED_MEDIA_TYPES,
) -> Optional[str]:
    if media_type is None and size_bytes is None:
        return "File is required"
    if (media_type or "").lower() not in allowed_media_types:
        return "File type not allowed. Please upload PDF, PNG, JPG, GIF, DOC, or DOCX files"
    if size_bytes is None or size_bytes < 0:
        return "File size is unknown"
    if size_bytes > max_size_bytes:
        max_mb = max_size_bytes / (1024 * 1024)
        return f"File size must be less than {max_mb:g}MB"
    return None
