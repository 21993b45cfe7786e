from typing import Any

from fastapi import APIRouter, Depends

from aclrehab.models.model_user import User
from aclrehab.schemas.sche_base import DataResponse
from aclrehab.schemas.sche_user_profile import UserProfileResponse, UserProfileSaveRequest
from aclrehab.services.srv_auth import AuthService
from aclrehab.services.srv_user_profile import UserProfileService

router = APIRouter()


@router.get('', response_model=DataResponse[UserProfileResponse])
def get_profile(
    profile_service: UserProfileService = Depends(),
    current_user: User = Depends(AuthService.get_current_user)
) -> Any:
    return DataResponse().success_response(data=profile_service.get_profile(current_user))


@router.put('', response_model=DataResponse[UserProfileResponse])
def save_profile(
    profile_data: UserProfileSaveRequest,
    profile_service: UserProfileService = Depends(),
    current_user: User = Depends(AuthService.get_current_user)
) -> Any:
    return DataResponse().success_response(data=profile_service.save_profile(profile_data, current_user))


@router.delete('', response_model=DataResponse[dict])
def delete_all_user_data(
    profile_service: UserProfileService = Depends(),
    current_user: User = Depends(AuthService.get_current_user)
) -> Any:
    return DataResponse().success_response(data=profile_service.delete_all_user_data(current_user))
