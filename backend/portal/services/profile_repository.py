"""
Profile repository: the only writer of profile, education and certificate rows.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..exceptions import NotFoundError, StorageError
from ..models import Certificate, Education, Profile
from .normalizer import ProfileChanges

logger = logging.getLogger(__name__)


class ProfileRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, user_id: int) -> Optional[Profile]:
        """Get profile with education and certificates loaded."""
        result = await self.db.execute(
            select(Profile)
            .options(
                selectinload(Profile.education),
                selectinload(Profile.certificates),
            )
            .where(Profile.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get(self, user_id: int) -> Profile:
        try:
            profile = await self._load(user_id)
        except SQLAlchemyError:
            logger.exception("Storage failure while loading profile for user %s", user_id)
            raise StorageError()

        if profile is None:
            raise NotFoundError("Profile not found")
        return profile

    async def upsert(self, user_id: int, changes: ProfileChanges) -> Profile:
        """Merge ``changes`` onto the stored profile, creating it on first write.

        Fields missing from ``changes`` keep their stored values. Everything is
        committed in one transaction.
        """
        try:
            profile = await self._load(user_id)
            if profile is None:
                profile = Profile(user_id=user_id, skills=[])
                self.db.add(profile)
                logger.info("Creating profile for user %s", user_id)

            for column, value in changes.fields.items():
                setattr(profile, column, value)

            if changes.skills is not None:
                profile.skills = list(changes.skills)
            if changes.education is not None:
                profile.education = [Education(**entry.model_dump()) for entry in changes.education]
            if changes.certificates is not None:
                profile.certificates = [Certificate(**entry.model_dump()) for entry in changes.certificates]

            # Files are only superseded when a new one was uploaded
            if changes.photo_url:
                profile.photo_url = changes.photo_url
            if changes.resume_url:
                profile.resume_url = changes.resume_url
                profile.resume_filename = changes.resume_filename

            profile.updated_at = datetime.now(timezone.utc)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("Storage failure while saving profile for user %s", user_id)
            raise StorageError()

        return await self.get(user_id)

    async def delete(self, user_id: int) -> None:
        """Remove the profile row; a missing profile is not an error."""
        try:
            profile = await self._load(user_id)
            if profile is None:
                return
            await self.db.delete(profile)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("Storage failure while deleting profile for user %s", user_id)
            raise StorageError()

        logger.info("Deleted profile for user %s", user_id)
