"""
Input validation for profile writes.

Every check appends to a list of ``FieldError`` instead of raising, so one
response can report all offending fields. ``raise_for_errors`` turns the list
into the matching exception.
"""
import json
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, List, Mapping, Optional, Union

from ..config import Settings
from ..exceptions import (
    FieldError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
    ValidationError,
)

# (min length, max length) for plain text fields, checked after trimming
TEXT_FIELDS = {
    "firstName": (2, 255),
    "lastName": (2, 255),
    "phone": (6, 255),
    "address": (None, 255),
    "bio": (None, 500),
    # flat education fields
    "educationLevel": (None, 255),
    "university": (None, 255),
    "courseName": (None, 255),
    "fieldOfStudy": (None, 255),
    "experienceLevel": (None, 50),
}
FLAT_DATE_FIELDS = ("startDate", "endDate")
FLAT_BOOL_FIELDS = ("currentlyStudying",)

EDUCATION_TEXT_FIELDS = {
    "degree": 255, "institution": 255, "course": 255,
    "fieldOfStudy": 255, "experienceLevel": 50,
}
CERTIFICATE_TEXT_FIELDS = {"certificateName": 255, "description": 1000}
ENTRY_DATE_FIELDS = ("startDate", "endDate")

PHOTO_SLOT = "profilePhoto"
RESUME_SLOT = "resume"
ALLOWED_MEDIA_TYPES = {
    PHOTO_SLOT: {"image/jpeg", "image/png", "image/webp", "image/gif"},
    RESUME_SLOT: {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    },
}

TRUE_STRINGS = {"true", "1", "on", "yes"}
FALSE_STRINGS = {"false", "0", "off", "no", ""}

_YEAR = re.compile(r"^\d{4}$")
_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{1,2})$")


# ============================================================================
# Wire shapes for list-valued fields
# ============================================================================

@dataclass
class StructuredList:
    """Field arrived as a native list (or a single object)."""
    items: list


@dataclass
class EncodedString:
    """Field arrived as a string holding JSON."""
    raw: str
    decoded: Any


@dataclass
class RawString:
    """Field arrived as a string that is not JSON."""
    raw: str


WireList = Union[StructuredList, EncodedString, RawString]


def classify_list_field(value: Any) -> Optional[WireList]:
    """Tag a raw ``skills``/``education``/``certificates`` value; None if unusable.

    ``null`` means an empty list whether it arrives natively or JSON-encoded.
    """
    if value is None:
        return StructuredList([])
    if isinstance(value, (list, tuple)):
        return StructuredList(list(value))
    if isinstance(value, dict):
        return StructuredList([value])
    if isinstance(value, str):
        if not value.strip():
            return StructuredList([])
        try:
            decoded = json.loads(value)
        except ValueError:
            return RawString(value)
        if decoded is None:
            return StructuredList([])
        return EncodedString(value, decoded)
    return None


# ============================================================================
# Scalar parsing helpers (shared with the normalizer)
# ============================================================================

def parse_calendar_date(value: str) -> date:
    """Parse ``YYYY``, ``YYYY-MM``, ``YYYY-MM-DD`` or an ISO datetime.

    Missing month/day default to the first. Raises ValueError otherwise.
    """
    text = value.strip()
    if _YEAR.match(text):
        return date(int(text), 1, 1)
    match = _YEAR_MONTH.match(text)
    if match:
        return date(int(match.group(1)), int(match.group(2)), 1)
    try:
        return date.fromisoformat(text)
    except ValueError:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()


def parse_flag(value: Any) -> bool:
    """Parse a checkbox-style value. Raises ValueError for anything else."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_STRINGS:
        return True
    if text in FALSE_STRINGS:
        return False
    raise ValueError(f"not a boolean: {value!r}")


# ============================================================================
# Field checks
# ============================================================================

def _check_text(errors: List[FieldError], field: str, value: Any,
                min_len: Optional[int], max_len: Optional[int]) -> None:
    if value is None:
        return
    if not isinstance(value, str):
        errors.append(FieldError(field, f"{field} must be a string"))
        return
    text = value.strip()
    if not text:
        return  # blank clears the field
    if min_len and len(text) < min_len:
        errors.append(FieldError(field, f"{field} must be at least {min_len} characters"))
    if max_len and len(text) > max_len:
        errors.append(FieldError(field, f"{field} must not exceed {max_len} characters"))


def _check_date(errors: List[FieldError], field: str, value: Any) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return
    if not isinstance(value, str):
        errors.append(FieldError(field, f"{field} must be a date string"))
        return
    try:
        parse_calendar_date(value)
    except ValueError:
        errors.append(FieldError(field, f"{field} must be a date (YYYY-MM or YYYY-MM-DD)"))


def _check_flag(errors: List[FieldError], field: str, value: Any) -> None:
    try:
        parse_flag(value)
    except ValueError:
        errors.append(FieldError(field, f"{field} must be true or false"))


def _check_skills(errors: List[FieldError], value: Any) -> None:
    shape = classify_list_field(value)
    if isinstance(shape, RawString):
        return  # free text, split downstream
    if isinstance(shape, EncodedString):
        if not isinstance(shape.decoded, list):
            errors.append(FieldError("skills", "Skills must be a valid array"))
            return
        items = shape.decoded
    elif isinstance(shape, StructuredList):
        items = shape.items
    else:
        errors.append(FieldError("skills", "Skills must be a valid array"))
        return

    if not all(isinstance(item, (str, int, float)) and not isinstance(item, bool) for item in items):
        errors.append(FieldError("skills", "Skills must be a list of strings"))


def _entries(errors: List[FieldError], field: str, label: str, value: Any) -> List[dict]:
    shape = classify_list_field(value)
    if isinstance(shape, EncodedString):
        decoded = shape.decoded
        items = [decoded] if isinstance(decoded, dict) else decoded
        if not isinstance(items, list):
            errors.append(FieldError(field, f"{label} must be a list"))
            return []
    elif isinstance(shape, StructuredList):
        items = shape.items
    else:
        errors.append(FieldError(field, f"{label} must be valid JSON"))
        return []

    if not all(isinstance(item, dict) for item in items):
        errors.append(FieldError(field, f"{label} entries must be objects"))
        return []
    return items


def _check_education(errors: List[FieldError], value: Any) -> None:
    for index, entry in enumerate(_entries(errors, "education", "Education", value)):
        prefix = f"education[{index}]"
        for key, max_len in EDUCATION_TEXT_FIELDS.items():
            _check_text(errors, f"{prefix}.{key}", entry.get(key), None, max_len)
        for key in ENTRY_DATE_FIELDS:
            _check_date(errors, f"{prefix}.{key}", entry.get(key))
        _check_flag(errors, f"{prefix}.currentlyStudying", entry.get("currentlyStudying"))


def _check_certificates(errors: List[FieldError], value: Any) -> None:
    for index, entry in enumerate(_entries(errors, "certificates", "Certificates", value)):
        prefix = f"certificates[{index}]"
        for key, max_len in CERTIFICATE_TEXT_FIELDS.items():
            _check_text(errors, f"{prefix}.{key}", entry.get(key), None, max_len)
        for key in ENTRY_DATE_FIELDS:
            _check_date(errors, f"{prefix}.{key}", entry.get(key))


def validate_profile_input(raw: Mapping[str, Any]) -> List[FieldError]:
    """Check every supplied profile field; absent fields are skipped."""
    errors: List[FieldError] = []

    for field, (min_len, max_len) in TEXT_FIELDS.items():
        if field in raw:
            _check_text(errors, field, raw[field], min_len, max_len)
    for field in FLAT_DATE_FIELDS:
        if field in raw:
            _check_date(errors, field, raw[field])
    for field in FLAT_BOOL_FIELDS:
        if field in raw:
            _check_flag(errors, field, raw[field])

    if "skills" in raw:
        _check_skills(errors, raw["skills"])
    if "education" in raw:
        _check_education(errors, raw["education"])
    if "certificates" in raw:
        _check_certificates(errors, raw["certificates"])

    return errors


def validate_upload(slot: str, content_type: Optional[str], size: int, settings: Settings) -> List[FieldError]:
    """Check one uploaded file against its slot's type allow-list and size bound."""
    errors: List[FieldError] = []
    limit = settings.max_photo_bytes if slot == PHOTO_SLOT else settings.max_resume_bytes

    base_type = (content_type or "").split(";")[0].strip().lower()
    if base_type not in ALLOWED_MEDIA_TYPES[slot]:
        errors.append(FieldError(slot, f"{slot} has unsupported type {base_type or 'unknown'}",
                                 kind="unsupported_media_type"))
    if size > limit:
        errors.append(FieldError(slot, f"{slot} must be at most {limit // (1024 * 1024)}MB",
                                 kind="too_large"))
    return errors


def raise_for_errors(errors: List[FieldError]) -> None:
    """Raise the error class matching the collected problems, if any."""
    if not errors:
        return
    kinds = {error.kind for error in errors}
    if "invalid" in kinds:
        raise ValidationError("Invalid profile data", errors)
    if "too_large" in kinds:
        raise PayloadTooLargeError(errors=errors)
    raise UnsupportedMediaTypeError(errors=errors)
