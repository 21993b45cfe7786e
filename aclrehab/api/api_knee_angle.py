import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from aclrehab.ai_agent.knee_angle_agent import KneeAngleAgent
from aclrehab.core.data_types import PoseCandidate
from aclrehab.helpers.enums import InjuryType, KneeSide
from aclrehab.models.model_user import User
from aclrehab.schemas.sche_base import DataResponse
from aclrehab.schemas.sche_knee_angle import (
    AnalyzeKneeAngleRequest, AnalyzeKneeAngleResponse, AngleResult, KeypointAngleRequest,
)
from aclrehab.services.srv_auth import AuthService
from aclrehab.services.srv_knee_angle import get_angle_measurer, get_geometric_estimator, get_knee_angle_agent
from aclrehab.services.srv_pose_angle import GeometricAngleEstimator, KneeAngleMeasurer

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post('/analyze', response_model=AnalyzeKneeAngleResponse, response_model_exclude_none=True)
def analyze_knee_angle(
    request: AnalyzeKneeAngleRequest,
    current_user: User = Depends(AuthService.get_current_user),
    agent: KneeAngleAgent = Depends(get_knee_angle_agent)
) -> Any:
    """Estimation backend: base64 photo(s) in, ``{angle, confidence}`` out."""
    logger.info(f"Analyze request from user {current_user.user_id}, injured knee={request.injured_knee}")
    return agent.analyze(request)


@router.post('/estimate', response_model=DataResponse[AngleResult])
def estimate_knee_angle(
    image: UploadFile = File(...),
    image_2: Optional[UploadFile] = File(None),
    injured_knee: Optional[KneeSide] = Form(None),
    injury_type: Optional[InjuryType] = Form(None),
    current_user: User = Depends(AuthService.get_current_user),
    measurer: KneeAngleMeasurer = Depends(get_angle_measurer)
) -> Any:
    second_image = image_2.file.read() if image_2 is not None else None
    result = measurer.measure(image.file.read(), injured_knee, injury_type, second_image)
    return DataResponse().success_response(data=result)


@router.post('/keypoints', response_model=DataResponse[AngleResult])
def knee_angle_from_keypoints(
    request: KeypointAngleRequest,
    current_user: User = Depends(AuthService.get_current_user),
    estimator: GeometricAngleEstimator = Depends(get_geometric_estimator)
) -> Any:
    candidate = PoseCandidate(joints=request.joints)
    result = estimator.estimate_from_candidates([candidate], injured_side=request.injured_knee)
    return DataResponse().success_response(data=result)
