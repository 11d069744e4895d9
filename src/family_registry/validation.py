"""Identity generation and person payload validation.

Payloads arrive as loosely-typed mappings in the wire shape (camelCase keys).
``validate_person_data`` never raises for bad input: every violation is
collected so a caller sees all of them at once.
"""
from __future__ import annotations

import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

from .errors import InvalidIdError

GENDERS = ("male", "female", "other", "unknown")
BLOOD_TYPES = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")

MIN_YEAR = 1000
MAX_NAME_LENGTH = 50
MAX_EVENT_LENGTH = 100
MAX_PLACE_LENGTH = 100
MAX_NOTES_LENGTH = 500
MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass
class ValidationResult:
    """Outcome of validating an untrusted person payload."""

    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class IdValidation:
    is_valid: bool
    error: str | None = None


def new_id() -> str:
    """Generate a fresh UUID v4 identifier."""
    return str(uuid.uuid4())


def current_year() -> int:
    return datetime.now(UTC).year


def parse_iso_date(value: Any) -> date | None:
    """Parse a ``YYYY-MM-DD`` string into a calendar date, or None."""
    if not isinstance(value, str):
        return None
    match = _ISO_DATE_RE.match(value.strip())
    if match is None:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def extract_year(value: Any) -> int | None:
    parsed = parse_iso_date(value)
    return parsed.year if parsed else None


def validate_date(value: Any, field_name: str) -> str | None:
    """Return an error message for a bad ISO date, None when acceptable or absent."""
    if value is None or value == "":
        return None
    parsed = parse_iso_date(value)
    if parsed is None:
        return f"{field_name} must be a valid date (YYYY-MM-DD format)"
    year_now = current_year()
    if parsed.year < MIN_YEAR or parsed.year > year_now:
        return f"{field_name} year must be between {MIN_YEAR} and {year_now}"
    return None


def validate_email(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str) or not _EMAIL_RE.match(value.strip()):
        return "Email must be a valid email address"
    return None


def validate_phone_number(value: Any) -> str | None:
    if value is None or value == "":
        return None
    digits = re.sub(r"\D", "", str(value))
    if not MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS:
        return f"Phone number must be between {MIN_PHONE_DIGITS} and {MAX_PHONE_DIGITS} digits"
    return None


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _too_long(value: Any, limit: int) -> bool:
    return isinstance(value, str) and len(value.strip()) > limit


def _is_year(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_names(data: Mapping[str, Any], partial: bool, errors: list[str]) -> None:
    for key, label in (("firstName", "First name"), ("lastName", "Last name")):
        if partial and key not in data:
            continue
        value = data.get(key)
        if _is_blank(value):
            errors.append(f"{label} is required")
        elif _too_long(value, MAX_NAME_LENGTH):
            errors.append(f"{label} must be {MAX_NAME_LENGTH} characters or less")

    middle = data.get("middleName")
    if middle is not None and not isinstance(middle, str):
        errors.append("Middle name must be a string")
    elif _too_long(middle, MAX_NAME_LENGTH):
        errors.append(f"Middle name must be {MAX_NAME_LENGTH} characters or less")


def _validate_life_events(events: Any, errors: list[str]) -> None:
    if not isinstance(events, list):
        errors.append("Life events must be an array")
        return

    for index, entry in enumerate(events, start=1):
        prefix = f"Life event {index}"
        if not isinstance(entry, Mapping):
            errors.append(f"{prefix}: Entry must be an object")
            continue

        description = entry.get("event")
        if _is_blank(description):
            errors.append(f"{prefix}: Event description is required")
        elif _too_long(description, MAX_EVENT_LENGTH):
            errors.append(f"{prefix}: Event description must be {MAX_EVENT_LENGTH} characters or less")

        event_date = entry.get("date")
        if not isinstance(event_date, str) or not event_date:
            errors.append(f"{prefix}: Date is required")
        else:
            date_error = validate_date(event_date, f"{prefix} date")
            if date_error:
                errors.append(date_error)

        if _too_long(entry.get("place"), MAX_PLACE_LENGTH):
            errors.append(f"{prefix}: Place must be {MAX_PLACE_LENGTH} characters or less")
        if _too_long(entry.get("notes"), MAX_NOTES_LENGTH):
            errors.append(f"{prefix}: Notes must be {MAX_NOTES_LENGTH} characters or less")


def _validate_legacy_years(data: Mapping[str, Any], errors: list[str]) -> None:
    year_now = current_year()
    birth_year = data.get("birthYear")
    death_year = data.get("deathYear")

    if birth_year is not None and (not _is_year(birth_year) or not MIN_YEAR <= birth_year <= year_now):
        errors.append("Birth year must be a valid number between 1000 and current year")

    if death_year is not None:
        if not _is_year(death_year) or not MIN_YEAR <= death_year <= year_now:
            errors.append("Death year must be a valid number between 1000 and current year")
        elif _is_year(birth_year) and death_year < birth_year:
            errors.append("Death year cannot be before birth year")


def validate_person_data(data: Any, *, partial: bool = False) -> ValidationResult:
    """Check an untrusted person payload against every field constraint.

    With ``partial=True`` the required-name rule only applies to name keys
    present in the payload, which is what partial updates need.
    """
    result = ValidationResult()
    errors = result.errors

    if not isinstance(data, Mapping):
        errors.append("Person data must be an object")
        return result

    _validate_names(data, partial, errors)

    gender = data.get("gender")
    if gender not in (None, "") and gender not in GENDERS:
        errors.append(f"Gender must be one of: {', '.join(GENDERS)}")

    birth_error = validate_date(data.get("birthDate"), "Birth date")
    if birth_error:
        errors.append(birth_error)
    death_error = validate_date(data.get("deathDate"), "Death date")
    if death_error:
        errors.append(death_error)

    birth = parse_iso_date(data.get("birthDate"))
    death = parse_iso_date(data.get("deathDate"))
    if birth and death and death <= birth:
        errors.append("Death date must be after birth date")

    email_error = validate_email(data.get("email"))
    if email_error:
        errors.append(email_error)

    phone_error = validate_phone_number(data.get("phoneNumber"))
    if phone_error:
        errors.append(phone_error)

    blood_type = data.get("bloodType")
    if blood_type not in (None, "") and blood_type not in BLOOD_TYPES:
        errors.append(f"Blood type must be one of: {', '.join(BLOOD_TYPES)}")

    if data.get("lifeEvents") is not None:
        _validate_life_events(data["lifeEvents"], errors)

    for key, label in (
        ("spouseIds", "Spouse IDs"),
        ("medicalConditions", "Medical conditions"),
        ("allergies", "Allergies"),
        ("sources", "Sources"),
    ):
        value = data.get(key)
        if value is not None and not (
            isinstance(value, list) and all(isinstance(item, str) for item in value)
        ):
            errors.append(f"{label} must be a list of strings")

    _validate_legacy_years(data, errors)
    return result


def validate_id(value: Any) -> IdValidation:
    """Check identifier shape only; existence is the store's business."""
    if not isinstance(value, str) or not value.strip():
        return IdValidation(False, "ID is required")
    if not _UUID_RE.match(value):
        return IdValidation(False, "ID must be a valid UUID")
    return IdValidation(True)


def require_valid_id(value: Any) -> str:
    check = validate_id(value)
    if not check.is_valid:
        raise InvalidIdError(check.error or "ID must be a valid UUID", value)
    return value
