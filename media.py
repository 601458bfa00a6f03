"""
Media storage for video files, thumbnails and user images.

Uploads are saved under UPLOAD_DIR/<resource_type>s/ and served by the
StaticFiles mount in main.py. ``public_id`` is the path relative to
UPLOAD_DIR, which is what ``delete`` takes back.
"""

import logging
import os
import shutil
from typing import Optional

from bson import ObjectId
from fastapi import HTTPException, UploadFile

from config import settings

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = {"video": ".mp4", "image": ".jpg"}


class MediaStore:
    """Stores uploaded files on local disk."""

    def __init__(self, root: str, url_prefix: str):
        self.root = root
        self.url_prefix = url_prefix.rstrip("/")
        for resource_type in DEFAULT_EXTENSIONS:
            os.makedirs(os.path.join(root, f"{resource_type}s"), exist_ok=True)

    def upload(self, file: Optional[UploadFile], resource_type: str = "image") -> dict:
        """Save an upload and return {url, public_id, duration}"""
        if file is None or not file.filename:
            raise HTTPException(status_code=400, detail=f"{resource_type.capitalize()} file is required")
        if file.content_type is None or not file.content_type.startswith(f"{resource_type}/"):
            raise HTTPException(status_code=400, detail=f"Only {resource_type} files are allowed")

        ext = os.path.splitext(file.filename)[1] or DEFAULT_EXTENSIONS[resource_type]
        public_id = f"{resource_type}s/{ObjectId()}{ext}"
        destination = os.path.join(self.root, public_id)
        try:
            with open(destination, "wb") as f:
                shutil.copyfileobj(file.file, f)
        except OSError as e:
            logger.error(f"Upload failed for {file.filename}: {e}")
            raise HTTPException(status_code=500, detail="Failed to store uploaded file")

        logger.info(f"Stored {resource_type} upload as {public_id}")
        return {
            "url": f"{self.url_prefix}/{public_id}",
            "public_id": public_id,
            "duration": None,
        }

    def delete(self, public_id: str, resource_type: str = "image") -> bool:
        """Remove a stored file. Returns False instead of raising so callers can keep going."""
        path = os.path.normpath(os.path.join(self.root, public_id))
        if not path.startswith(os.path.normpath(self.root) + os.sep):
            logger.warning(f"Refusing to delete {resource_type} outside media root: {public_id}")
            return False
        try:
            os.remove(path)
            logger.info(f"Deleted {resource_type} {public_id}")
            return True
        except OSError as e:
            logger.warning(f"Could not delete {resource_type} {public_id}: {e}")
            return False


_store: Optional[MediaStore] = None


def get_media_store() -> MediaStore:
    """FastAPI dependency for the configured media store"""
    global _store
    if _store is None:
        _store = MediaStore(settings.UPLOAD_DIR, settings.MEDIA_URL_PREFIX)
    return _store
