"""
Profile Image Storage.

Uploads a signup profile picture to the Supabase Storage avatar bucket
under ``{user_id}/avatar.{ext}`` and returns its public URL.
"""

from __future__ import annotations

from pathlib import Path

from knowex.database import DatabaseManager
from knowex.logger import StructuredLogger
from knowex.services.base_service import BaseService, ServiceError

DEFAULT_EXTENSION: str = "jpg"


class AvatarUploadError(ServiceError):
    """Raised when a profile image cannot be read or stored."""


def avatar_object_path(user_id: str, image_path: Path) -> str:
    """Storage key for *user_id*'s avatar, keeping the file extension."""
    ext = image_path.suffix.lstrip(".").lower() or DEFAULT_EXTENSION
    return f"{user_id}/avatar.{ext}"


class AvatarStorageService(BaseService):
    """Thin wrapper over ``supabase.storage`` for avatar uploads."""

    def __init__(
        self,
        db: DatabaseManager,
        logger: StructuredLogger,
        bucket: str = "avatars",
    ) -> None:
        super().__init__(logger)
        self._db = db
        self._bucket = bucket

    def upload_avatar(self, user_id: str, image_path: Path) -> str:
        """Upload *image_path* for *user_id* and return its public URL.

        Re-uploading replaces the previous avatar.

        Raises:
            AvatarUploadError: The file could not be read, or storage
                rejected the upload.
        """
        object_path = avatar_object_path(user_id, image_path)
        ext = object_path.rsplit(".", 1)[-1]
        try:
            payload = image_path.read_bytes()
        except OSError as exc:
            raise AvatarUploadError(
                f"Could not read profile image {image_path}", exc
            ) from exc

        try:
            bucket = self._db.supabase.storage.from_(self._bucket)
            bucket.upload(
                object_path,
                payload,
                {"content-type": f"image/{ext}", "upsert": "true"},
            )
            public_url: str = bucket.get_public_url(object_path)
        except Exception as exc:
            raise AvatarUploadError(f"Upload failed: {exc}", exc) from exc

        self._logger.info(
            "Avatar uploaded: %s", object_path,
            extra={"event": "AVATAR_UPLOADED", "user_id": user_id},
        )
        return public_url
