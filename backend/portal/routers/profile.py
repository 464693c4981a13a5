"""
Profile Router - read, merge-update and delete the caller's profile
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from ..config import Settings, get_app_settings
from ..database import get_db
from ..exceptions import FieldError, ValidationError
from ..models import User
from ..schemas.profile import ProfileResponse
from ..schemas.user import MessageResponse
from ..services.auth import get_current_user
from ..services.normalizer import normalize_profile
from ..services.profile_repository import ProfileRepository
from ..services.storage import FileStore
from ..services.validation import (
    PHOTO_SLOT,
    RESUME_SLOT,
    raise_for_errors,
    validate_profile_input,
    validate_upload,
)

router = APIRouter(prefix="/api/profile", tags=["Profile"])

FILE_SLOTS = (PHOTO_SLOT, RESUME_SLOT)


def get_profile_repository(db: AsyncSession = Depends(get_db)) -> ProfileRepository:
    return ProfileRepository(db)


def get_file_store(settings: Settings = Depends(get_app_settings)) -> FileStore:
    return FileStore(settings.uploads_dir)


async def _read_json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


@router.get("", response_model=ProfileResponse)
async def get_my_profile(
    repository: ProfileRepository = Depends(get_profile_repository),
    current_user: User = Depends(get_current_user),
):
    """Get current user's profile with education and certificates."""
    return await repository.get(current_user.id)


@router.put("", response_model=ProfileResponse)
async def update_my_profile(
    request: Request,
    repository: ProfileRepository = Depends(get_profile_repository),
    file_store: FileStore = Depends(get_file_store),
    settings: Settings = Depends(get_app_settings),
    current_user: User = Depends(get_current_user),
):
    """
    Merge the submitted fields into the profile.

    Accepts multipart form data (flat fields, JSON-encoded ``skills`` /
    ``education`` / ``certificates``, optional ``profilePhoto`` and ``resume``
    files) or a JSON object with the same keys. Omitted fields keep their
    stored values.
    """
    if request.headers.get("content-type", "").startswith("application/json"):
        raw = await _read_json_body(request)
        uploads = {}
        errors = validate_profile_input(raw)
    else:
        async with request.form() as form:
            raw = {}
            for key in form.keys():
                values = form.getlist(key)
                raw[key] = values[0] if len(values) == 1 else values

            errors = []
            uploads = {}
            for slot in FILE_SLOTS:
                upload = raw.pop(slot, None)
                if not isinstance(upload, UploadFile):
                    if upload not in (None, ""):
                        errors.append(FieldError(slot, f"{slot} must be a file"))
                    continue
                if not upload.filename:
                    continue  # empty file input
                limit = settings.max_photo_bytes if slot == PHOTO_SLOT else settings.max_resume_bytes
                content = await upload.read(limit + 1)
                errors.extend(validate_upload(slot, upload.content_type, len(content), settings))
                uploads[slot] = (upload.filename, content)

            errors = validate_profile_input(raw) + errors

    raise_for_errors(errors)
    changes = normalize_profile(raw)

    if PHOTO_SLOT in uploads:
        filename, content = uploads[PHOTO_SLOT]
        changes.photo_url = await file_store.save(current_user.id, PHOTO_SLOT, filename, content)
    if RESUME_SLOT in uploads:
        filename, content = uploads[RESUME_SLOT]
        changes.resume_url = await file_store.save(current_user.id, RESUME_SLOT, filename, content)
        changes.resume_filename = filename[:255]

    return await repository.upsert(current_user.id, changes)


@router.delete("", response_model=MessageResponse)
async def delete_my_profile(
    repository: ProfileRepository = Depends(get_profile_repository),
    current_user: User = Depends(get_current_user),
):
    """Delete the profile. Uploaded files are left in storage."""
    await repository.delete(current_user.id)
    return MessageResponse(message="Profile deleted")
