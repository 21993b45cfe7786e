import logging
import os
import uuid
from typing import Optional

from aclrehab.core.config import settings
from aclrehab.core.image_processing import encode_jpeg, load_image

logger = logging.getLogger(__name__)

STATIC_UPLOADS_URL = '/static/uploads'


class PhotoStorageService:
    """Measurement photos on local disk, stored as ``users/<uid>/photos/<measurement_id>.jpg``."""

    def __init__(self, upload_dir: Optional[str] = None, jpeg_quality: Optional[int] = None):
        self.upload_dir = upload_dir or settings.UPLOAD_DIR
        self.jpeg_quality = jpeg_quality or settings.JPEG_QUALITY

    @staticmethod
    def _relative_path(user_id: uuid.UUID, measurement_id: uuid.UUID) -> str:
        return f"users/{user_id}/photos/{measurement_id}.jpg"

    def save_photo(self, user_id: uuid.UUID, measurement_id: uuid.UUID, image_bytes: bytes) -> str:
        """Re-encode ``image_bytes`` as JPEG and return its static URL."""
        jpeg = encode_jpeg(load_image(image_bytes), quality=self.jpeg_quality)
        relative_path = self._relative_path(user_id, measurement_id)
        file_location = os.path.join(self.upload_dir, relative_path)
        os.makedirs(os.path.dirname(file_location), exist_ok=True)
        with open(file_location, 'wb') as buffer:
            buffer.write(jpeg)
        logger.info(f"Photo saved: {file_location} ({len(jpeg)} bytes)")
        return f"{STATIC_UPLOADS_URL}/{relative_path}"

    def delete_photo(self, user_id: uuid.UUID, measurement_id: uuid.UUID) -> bool:
        file_location = os.path.join(self.upload_dir, self._relative_path(user_id, measurement_id))
        if not os.path.exists(file_location):
            return False
        os.remove(file_location)
        logger.info(f"Photo deleted: {file_location}")
        return True

    def delete_user_photos(self, user_id: uuid.UUID) -> int:
        photo_dir = os.path.join(self.upload_dir, 'users', str(user_id), 'photos')
        if not os.path.isdir(photo_dir):
            return 0
        deleted = 0
        for filename in os.listdir(photo_dir):
            os.remove(os.path.join(photo_dir, filename))
            deleted += 1
        logger.info(f"Deleted {deleted} photo(s) of user {user_id}")
        return deleted


def get_photo_storage() -> PhotoStorageService:
    return PhotoStorageService()
