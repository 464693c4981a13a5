"""
Profile normalizer: reshapes validated wire input into the canonical change set
handed to ``ProfileRepository.upsert``.

Runs after ``validate_profile_input`` accepted the input, so it never rejects;
anything it cannot use is dropped.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..schemas.profile import CertificateEntry, EducationEntry
from .validation import (
    EncodedString,
    RawString,
    StructuredList,
    classify_list_field,
    parse_calendar_date,
    parse_flag,
)

# wire name -> Profile column
SCALAR_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "phone": "phone",
    "address": "address",
    "bio": "bio",
}

# flat form field -> education entry key
FLAT_EDUCATION_FIELDS = {
    "educationLevel": "degree",
    "university": "institution",
    "courseName": "course",
    "fieldOfStudy": "fieldOfStudy",
    "startDate": "startDate",
    "endDate": "endDate",
    "currentlyStudying": "currentlyStudying",
    "experienceLevel": "experienceLevel",
}


@dataclass
class ProfileChanges:
    """Canonical partial profile. ``None`` list fields mean "not supplied"."""
    fields: Dict[str, Optional[str]] = field(default_factory=dict)
    skills: Optional[List[str]] = None
    education: Optional[List[EducationEntry]] = None
    certificates: Optional[List[CertificateEntry]] = None
    photo_url: Optional[str] = None
    resume_url: Optional[str] = None
    resume_filename: Optional[str] = None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _date(value: Any) -> Optional[str]:
    text = _text(value)
    if text is None:
        return None
    try:
        return parse_calendar_date(text).isoformat()
    except ValueError:
        return None


def _list_items(value: Any) -> List[Any]:
    shape = classify_list_field(value)
    if isinstance(shape, StructuredList):
        return shape.items
    if isinstance(shape, EncodedString):
        decoded = shape.decoded
        return decoded if isinstance(decoded, list) else [decoded]
    return []


def normalize_skills(value: Any) -> List[str]:
    """Canonical skill list from a native list, a JSON string or free text."""
    shape = classify_list_field(value)
    if isinstance(shape, RawString):
        items = shape.raw.split(",")
    elif isinstance(shape, EncodedString) and not isinstance(shape.decoded, list):
        items = [shape.raw]
    else:
        items = _list_items(value)
    skills = []
    for item in items:
        if isinstance(item, (dict, list)):
            continue
        text = _text(item)
        if text:
            skills.append(text)
    return skills


def _education_entry(data: Mapping[str, Any]) -> EducationEntry:
    try:
        studying = parse_flag(data.get("currentlyStudying"))
    except ValueError:
        studying = False
    return EducationEntry(
        degree=_text(data.get("degree")),
        institution=_text(data.get("institution")),
        course=_text(data.get("course")),
        field_of_study=_text(data.get("fieldOfStudy")),
        start_date=_date(data.get("startDate")),
        end_date=None if studying else _date(data.get("endDate")),
        currently_studying=studying,
        experience_level=_text(data.get("experienceLevel")),
    )


def normalize_education(raw: Mapping[str, Any]) -> Optional[List[EducationEntry]]:
    """The single current education block, built from ``education`` and flat fields.

    Flat fields overlay the first supplied entry. Returns None when neither
    source is present, an empty list when everything supplied is blank.
    """
    flat = {key: raw[wire] for wire, key in FLAT_EDUCATION_FIELDS.items() if wire in raw}
    if "education" not in raw and not flat:
        return None

    entries = [item for item in _list_items(raw.get("education")) if isinstance(item, dict)]
    merged = dict(entries[0]) if entries else {}
    merged.update(flat)

    entry = _education_entry(merged)
    return [] if entry.is_blank() else [entry]


def normalize_certificates(value: Any) -> List[CertificateEntry]:
    """Certificates with a non-blank name, in the order supplied."""
    certificates = []
    for item in _list_items(value):
        if not isinstance(item, dict):
            continue
        name = _text(item.get("certificateName"))
        if not name:
            continue
        certificates.append(CertificateEntry(
            name=name,
            start_date=_date(item.get("startDate")),
            end_date=_date(item.get("endDate")),
            description=_text(item.get("description")),
        ))
    return certificates


def normalize_profile(raw: Mapping[str, Any]) -> ProfileChanges:
    changes = ProfileChanges()

    for wire, column in SCALAR_FIELDS.items():
        if wire in raw:
            changes.fields[column] = _text(raw[wire])

    if "skills" in raw:
        changes.skills = normalize_skills(raw["skills"])
    changes.education = normalize_education(raw)
    if "certificates" in raw:
        changes.certificates = normalize_certificates(raw["certificates"])

    return changes
