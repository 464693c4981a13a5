"""
Profile schemas: canonical education/certificate entries and the profile document
"""
from typing import List, Optional
from pydantic import Field, field_validator
from datetime import datetime

from . import CamelModel


class EducationEntry(CamelModel):
    degree: Optional[str] = None
    institution: Optional[str] = None
    course: Optional[str] = None
    field_of_study: Optional[str] = None
    start_date: Optional[str] = None  # "YYYY-MM-DD"
    end_date: Optional[str] = None
    currently_studying: bool = False
    experience_level: Optional[str] = None

    class Config:
        from_attributes = True

    def is_blank(self) -> bool:
        return not self.currently_studying and not any(
            getattr(self, name) for name in (
                "degree", "institution", "course", "field_of_study",
                "start_date", "end_date", "experience_level",
            )
        )


class CertificateEntry(CamelModel):
    name: str = Field(alias="certificateName")
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    description: Optional[str] = None

    class Config:
        from_attributes = True


class ProfileResponse(CamelModel):
    """Full profile document"""
    id: int
    user_id: int

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    bio: Optional[str] = None

    skills: List[str] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    certificates: List[CertificateEntry] = Field(default_factory=list)

    photo_url: Optional[str] = Field(default=None, serialization_alias="profilePhoto")
    resume_url: Optional[str] = Field(default=None, serialization_alias="resume")
    resume_filename: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("skills", mode="before")
    @classmethod
    def _skills_never_null(cls, value):
        return value or []
