"""
Local storage for uploaded profile files.

Files are written under ``<uploads_dir>/<slot>/`` and addressed by the
``/uploads/...`` path stored on the profile. Superseded files are left in place.
"""
import logging
import os
import re
import uuid

import aiofiles

from ..exceptions import StorageError

logger = logging.getLogger(__name__)

SLOT_DIRECTORIES = {
    "profilePhoto": "photos",
    "resume": "resumes",
}


def sanitize_filename(filename: str) -> str:
    safe_filename = filename.replace(" ", "_").replace("/", "_").replace("\\", "_")
    safe_filename = re.sub(r'[^\w\-_\.]', '', safe_filename)
    safe_filename = re.sub(r'_+', '_', safe_filename)
    return safe_filename[-100:] or "upload"


class FileStore:
    def __init__(self, uploads_dir: str, public_prefix: str = "/uploads"):
        self.uploads_dir = uploads_dir
        self.public_prefix = public_prefix

    async def save(self, user_id: int, slot: str, filename: str, content: bytes) -> str:
        """Write one upload and return its public path."""
        directory = SLOT_DIRECTORIES[slot]
        target_dir = os.path.join(self.uploads_dir, directory)

        unique_id = uuid.uuid4().hex[:12]
        local_filename = f"user_{user_id}_{unique_id}_{sanitize_filename(filename or slot)}"

        try:
            os.makedirs(target_dir, exist_ok=True)
            async with aiofiles.open(os.path.join(target_dir, local_filename), 'wb') as f:
                await f.write(content)
        except OSError:
            logger.exception("Failed to store %s for user %s", slot, user_id)
            raise StorageError("Failed to save uploaded file. Please try again.")

        public_path = f"{self.public_prefix}/{directory}/{local_filename}"
        logger.info("Stored %s for user %s at %s", slot, user_id, public_path)
        return public_path
