"""
Profile models: one profile per user with education and certificate rows
"""
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Boolean, ForeignKey, JSON
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class Profile(Base):
    """Professional profile owned by exactly one User"""
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False)

    # Identity & contact
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    phone = Column(String(255), nullable=True)
    address = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)

    skills = Column(JSON, default=list)  # ["Go", "SQL"] as entered

    # Stored files ("/uploads/..." paths)
    photo_url = Column(String(500), nullable=True)
    resume_url = Column(String(500), nullable=True)
    resume_filename = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="profile")
    education = relationship(
        "Education", back_populates="profile", cascade="all, delete-orphan", order_by="Education.id"
    )
    certificates = relationship(
        "Certificate", back_populates="profile", cascade="all, delete-orphan", order_by="Certificate.id"
    )


class Education(Base):
    """Current education block"""
    __tablename__ = "education"

    id = Column(Integer, primary_key=True, index=True)
    profile_id = Column(Integer, ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)

    degree = Column(String(255), nullable=True)  # highschool / bachelor / master / phd
    institution = Column(String(255), nullable=True)
    course = Column(String(255), nullable=True)
    field_of_study = Column(String(255), nullable=True)
    start_date = Column(String(10), nullable=True)  # "YYYY-MM-DD"
    end_date = Column(String(10), nullable=True)
    currently_studying = Column(Boolean, default=False)
    experience_level = Column(String(50), nullable=True)  # entry / mid / senior

    profile = relationship("Profile", back_populates="education")


class Certificate(Base):
    """Professional certificates"""
    __tablename__ = "certificates"

    id = Column(Integer, primary_key=True, index=True)
    profile_id = Column(Integer, ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)

    name = Column(String(255), nullable=False)
    start_date = Column(String(10), nullable=True)
    end_date = Column(String(10), nullable=True)
    description = Column(Text, nullable=True)

    profile = relationship("Profile", back_populates="certificates")
