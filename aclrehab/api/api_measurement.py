from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile

from aclrehab.helpers.enums import MeasurementType
from aclrehab.models.model_user import User
from aclrehab.schemas.sche_base import DataResponse, ResponseSchemaBase
from aclrehab.schemas.sche_measurement import MeasurementCreateRequest, MeasurementResponse, ProgressResponse
from aclrehab.services.srv_auth import AuthService
from aclrehab.services.srv_measurement import MeasurementService

router = APIRouter()


@router.get('', response_model=DataResponse[List[MeasurementResponse]])
def list_measurements(
    type: Optional[MeasurementType] = None,
    measurement_service: MeasurementService = Depends(),
    current_user: User = Depends(AuthService.get_current_user)
) -> Any:
    measurements = measurement_service.list_measurements(current_user, type)
    return DataResponse().success_response(data=[MeasurementResponse.model_validate(m) for m in measurements])


@router.post('', response_model=DataResponse[MeasurementResponse])
def create_measurement(
    measurement_data: MeasurementCreateRequest,
    measurement_service: MeasurementService = Depends(),
    current_user: User = Depends(AuthService.get_current_user)
) -> Any:
    measurement = measurement_service.create_measurement(measurement_data, current_user)
    return DataResponse().success_response(data=MeasurementResponse.model_validate(measurement))


@router.get('/progress', response_model=DataResponse[ProgressResponse])
def get_progress(
    measurement_service: MeasurementService = Depends(),
    current_user: User = Depends(AuthService.get_current_user)
) -> Any:
    return DataResponse().success_response(data=measurement_service.get_progress(current_user))


@router.post('/{measurement_id}/photo', response_model=DataResponse[MeasurementResponse])
def attach_photo(
    measurement_id: UUID,
    photo: UploadFile = File(...),
    measurement_service: MeasurementService = Depends(),
    current_user: User = Depends(AuthService.get_current_user)
) -> Any:
    measurement = measurement_service.attach_photo(measurement_id, photo.file.read(), current_user)
    return DataResponse().success_response(data=MeasurementResponse.model_validate(measurement))


@router.delete('/{measurement_id}', response_model=ResponseSchemaBase)
def delete_measurement(
    measurement_id: UUID,
    measurement_service: MeasurementService = Depends(),
    current_user: User = Depends(AuthService.get_current_user)
) -> Any:
    measurement_service.delete_measurement(measurement_id, current_user)
    return ResponseSchemaBase().success_response()
