import logging
from typing import Optional

from fastapi import Depends

from aclrehab.helpers.date_helpers import calculate_week_post_op, days_until_surgery
from aclrehab.helpers.exception_handler import CustomException
from aclrehab.models.model_user import User
from aclrehab.models.model_user_profile import UserProfile
from aclrehab.repository.repo_measurement import MeasurementRepository
from aclrehab.repository.repo_user_profile import UserProfileRepository
from aclrehab.schemas.sche_user_profile import UserProfileResponse, UserProfileSaveRequest
from aclrehab.services.srv_photo_storage import PhotoStorageService, get_photo_storage

logger = logging.getLogger(__name__)


class UserProfileService:
    def __init__(self, profile_repo: UserProfileRepository = Depends(),
                 measurement_repo: MeasurementRepository = Depends(),
                 photo_storage: PhotoStorageService = Depends(get_photo_storage)):
        self.profile_repo = profile_repo
        self.measurement_repo = measurement_repo
        self.photo_storage = photo_storage

    @staticmethod
    def to_response(profile: UserProfile) -> UserProfileResponse:
        response = UserProfileResponse.model_validate(profile)
        response.week_post_op = calculate_week_post_op(profile.surgery_date)
        response.days_until_surgery = days_until_surgery(profile.surgery_date)
        return response

    def find_profile(self, current_user: User) -> Optional[UserProfile]:
        return self.profile_repo.get_by_user_id(current_user.user_id)

    def get_profile(self, current_user: User) -> UserProfileResponse:
        profile = self.find_profile(current_user)
        if not profile:
            raise CustomException(http_code=404, code='404', message="Profile not found")
        return self.to_response(profile)

    def save_profile(self, data: UserProfileSaveRequest, current_user: User) -> UserProfileResponse:
        profile = self.find_profile(current_user)
        if profile is None:
            profile = UserProfile(user_id=current_user.user_id)
            self._apply(profile, data)
            profile = self.profile_repo.create(profile)
            logger.info(f"Profile created for user {current_user.user_id}")
        else:
            self._apply(profile, data)
            profile = self.profile_repo.update(profile)
            logger.info(f"Profile updated for user {current_user.user_id}")
        return self.to_response(profile)

    @staticmethod
    def _apply(profile: UserProfile, data: UserProfileSaveRequest):
        profile.name = data.name
        profile.surgery_date = data.surgery_date
        profile.injured_knee = data.injured_knee.value if data.injured_knee else None
        profile.injury_type = data.injury_type.value if data.injury_type else None

    def delete_all_user_data(self, current_user: User) -> dict:
        measurements = self.measurement_repo.delete_by_user_id(current_user.user_id)
        profiles = self.profile_repo.delete_by_user_id(current_user.user_id)
        photos = self.photo_storage.delete_user_photos(current_user.user_id)
        logger.info(f"Deleted data of user {current_user.user_id}: "
                    f"{profiles} profile, {measurements} measurements, {photos} photos")
        return {'profile': profiles, 'measurements': measurements, 'photos': photos}
