"""
Request-scoped wiring of the knee angle components.

The application keeps its collaborators on ``app.state`` (set by
`aclrehab.main.get_application`); these dependencies hand them to the routers.
"""
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials

from aclrehab.ai_agent.knee_angle_agent import KneeAngleAgent
from aclrehab.core.config import settings
from aclrehab.helpers.exception_handler import InternalEstimationError
from aclrehab.services.srv_angle_estimation import (
    AgentAngleTransport, AngleEstimationClient, AngleEstimationTransport, HttpAngleTransport,
)
from aclrehab.services.srv_auth import reusable_oauth2
from aclrehab.services.srv_pose_angle import GeometricAngleEstimator, KneeAngleMeasurer

logger = logging.getLogger(__name__)


def get_knee_angle_agent(request: Request) -> KneeAngleAgent:
    agent = getattr(request.app.state, 'knee_angle_agent', None)
    if agent is None:
        logger.error("Knee angle estimation requested but GEMINI_API_KEY is not configured")
        raise InternalEstimationError("Knee angle estimation is not configured on this server")
    return agent


def get_geometric_estimator(request: Request) -> GeometricAngleEstimator:
    return GeometricAngleEstimator(detector=getattr(request.app.state, 'pose_detector', None))


def get_angle_measurer(
    request: Request,
    http_authorization_credentials: Optional[HTTPAuthorizationCredentials] = Depends(reusable_oauth2),
    geometric: GeometricAngleEstimator = Depends(get_geometric_estimator)
) -> KneeAngleMeasurer:
    """
    Forward to ``ESTIMATION_BACKEND_URL`` with the caller's token when it is
    set, otherwise estimate in-process with the local agent. Without either,
    a configured pose detector measures on its own.
    """
    transport: AngleEstimationTransport
    if settings.ESTIMATION_BACKEND_URL:
        token = http_authorization_credentials.credentials if http_authorization_credentials else None
        transport = HttpAngleTransport(settings.ESTIMATION_BACKEND_URL, access_token=token)
    elif getattr(request.app.state, 'knee_angle_agent', None) is None and geometric.available:
        logger.info("No remote estimator configured, measuring with local pose detection")
        return KneeAngleMeasurer(client=None, geometric=geometric)
    else:
        transport = AgentAngleTransport(get_knee_angle_agent(request))
    return KneeAngleMeasurer(client=AngleEstimationClient(transport), geometric=geometric)
