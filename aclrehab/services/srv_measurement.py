import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends

from aclrehab.helpers.date_helpers import calculate_week_post_op
from aclrehab.helpers.enums import MeasurementType
from aclrehab.helpers.exception_handler import CustomException
from aclrehab.models.model_measurement import Measurement
from aclrehab.models.model_user import User
from aclrehab.repository.repo_measurement import MeasurementRepository
from aclrehab.repository.repo_user_profile import UserProfileRepository
from aclrehab.schemas.sche_measurement import MeasurementCreateRequest, ProgressItem, ProgressResponse
from aclrehab.services.srv_photo_storage import PhotoStorageService, get_photo_storage

logger = logging.getLogger(__name__)


def best_angle(measurement_type: MeasurementType, angles: List[int]) -> Optional[int]:
    """Extension improves towards 0, flexion towards the largest bend."""
    if not angles:
        return None
    return min(angles) if measurement_type is MeasurementType.EXTENSION else max(angles)


def is_goal_reached(measurement_type: MeasurementType, angle: Optional[int]) -> bool:
    if angle is None:
        return False
    if measurement_type is MeasurementType.EXTENSION:
        return angle <= measurement_type.goal_angle
    return angle >= measurement_type.goal_angle


def to_naive_utc(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class MeasurementService:
    def __init__(self, measurement_repo: MeasurementRepository = Depends(),
                 profile_repo: UserProfileRepository = Depends(),
                 photo_storage: PhotoStorageService = Depends(get_photo_storage)):
        self.measurement_repo = measurement_repo
        self.profile_repo = profile_repo
        self.photo_storage = photo_storage

    def _week_post_op(self, current_user: User, at: Optional[datetime] = None) -> int:
        profile = self.profile_repo.get_by_user_id(current_user.user_id)
        if profile is None:
            return 0
        return calculate_week_post_op(profile.surgery_date, at.date() if at else None)

    def create_measurement(self, data: MeasurementCreateRequest, current_user: User) -> Measurement:
        timestamp = to_naive_utc(data.timestamp or datetime.now(timezone.utc))
        measurement = Measurement(
            user_id=current_user.user_id,
            type=data.type.value,
            angle=data.angle,
            confidence=data.confidence,
            timestamp=timestamp,
            week_post_op=self._week_post_op(current_user, timestamp),
        )
        created = self.measurement_repo.create(measurement)
        logger.info(f"Measurement saved: {created.measurement_id} {created.type}={created.angle}")
        return created

    def list_measurements(self, current_user: User,
                          measurement_type: Optional[MeasurementType] = None) -> List[Measurement]:
        return self.measurement_repo.list_by_user(
            current_user.user_id, measurement_type.value if measurement_type else None
        )

    def get_measurement(self, measurement_id: uuid.UUID, current_user: User) -> Measurement:
        measurement = self.measurement_repo.get_by_id(current_user.user_id, measurement_id)
        if not measurement:
            raise CustomException(http_code=404, code='404', message="Measurement not found")
        return measurement

    def attach_photo(self, measurement_id: uuid.UUID, image_bytes: bytes, current_user: User) -> Measurement:
        measurement = self.get_measurement(measurement_id, current_user)
        measurement.photo_url = self.photo_storage.save_photo(current_user.user_id, measurement_id, image_bytes)
        return self.measurement_repo.update(measurement)

    def delete_measurement(self, measurement_id: uuid.UUID, current_user: User) -> None:
        measurement = self.get_measurement(measurement_id, current_user)
        had_photo = bool(measurement.photo_url)
        self.measurement_repo.delete(measurement)
        # Files go only after the row is committed
        if had_photo:
            self.photo_storage.delete_photo(current_user.user_id, measurement_id)
        logger.info(f"Measurement deleted: {measurement_id}")

    def get_progress(self, current_user: User) -> ProgressResponse:
        measurements = self.measurement_repo.list_by_user(current_user.user_id)
        items = {}
        for measurement_type in MeasurementType:
            # Newest first
            angles = [m.angle for m in measurements if m.type == measurement_type.value]
            best = best_angle(measurement_type, angles)
            items[measurement_type.value] = ProgressItem(
                type=measurement_type,
                goal_angle=measurement_type.goal_angle,
                latest_angle=angles[0] if angles else None,
                best_angle=best,
                measurement_count=len(angles),
                goal_reached=is_goal_reached(measurement_type, best),
            )
        return ProgressResponse(week_post_op=self._week_post_op(current_user), **items)
