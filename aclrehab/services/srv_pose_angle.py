"""
Pose Angle Service - knee angle from detected keypoints.

`GeometricAngleEstimator` runs the local path (detector -> leg selection ->
calculator). `KneeAngleMeasurer` prefers the remote estimate and falls back to
the local path only when the remote one is unavailable.
"""

import logging
from typing import Optional, Sequence

from aclrehab.core.config import settings
from aclrehab.core.data_types import PoseCandidate
from aclrehab.core.detector import PoseDetector
from aclrehab.core.keypoint_selection import select_from_candidates
from aclrehab.core.kinematics import compute_knee_angle, is_degenerate
from aclrehab.helpers.enums import InjuryType, KneeSide
from aclrehab.helpers.exception_handler import (
    AngleEstimationError, InternalEstimationError, InvalidInputError,
)
from aclrehab.schemas.sche_knee_angle import AngleResult
from aclrehab.services.srv_angle_estimation import AngleEstimationClient, is_fallback_eligible

logger = logging.getLogger(__name__)


class GeometricAngleEstimator:
    def __init__(self, detector: Optional[PoseDetector] = None, threshold: Optional[float] = None):
        self.detector = detector
        self.threshold = threshold if threshold is not None else settings.KEYPOINT_CONFIDENCE_THRESHOLD

    @property
    def available(self) -> bool:
        return self.detector is not None

    def estimate_from_candidates(self, candidates: Sequence[PoseCandidate],
                                 injured_side: Optional[KneeSide] = None) -> AngleResult:
        """
        Measure the knee angle from already detected skeletons.

        The result confidence is the weakest of the three selected joints.

        Raises:
            NoReliableKeypointsError: No leg clears the confidence threshold.
            InvalidInputError: Hip or ankle coincides with the knee.
        """
        leg = select_from_candidates(candidates, injured_side=injured_side, threshold=self.threshold)
        if is_degenerate(leg.hip, leg.knee, leg.ankle):
            raise InvalidInputError("Hip or ankle coincides with the knee; the angle is undefined")

        angle = compute_knee_angle(leg.hip, leg.knee, leg.ankle)
        logger.info(f"Geometric knee angle on {leg.side.value} leg: {angle}")
        return AngleResult(
            angle_degrees=angle,
            confidence=leg.min_confidence(),
            hip=leg.hip,
            knee=leg.knee,
            ankle=leg.ankle,
        )

    def estimate(self, image: bytes, injured_side: Optional[KneeSide] = None) -> AngleResult:
        if self.detector is None:
            raise InternalEstimationError("No pose detector configured")
        candidates = self.detector.detect(image)
        return self.estimate_from_candidates(candidates, injured_side=injured_side)


class KneeAngleMeasurer:
    """
    Remote estimate first, local geometry when the remote estimate is unavailable.

    Only transport-level failures (`InternalEstimationError` other than a
    malformed answer, and `EstimationTimeoutError`) trigger the fallback. A
    rate limit, bad input or "no leg visible" answer is reported as is.
    """

    def __init__(self, client: Optional[AngleEstimationClient] = None,
                 geometric: Optional[GeometricAngleEstimator] = None,
                 fallback_enabled: Optional[bool] = None):
        self.client = client
        self.geometric = geometric or GeometricAngleEstimator()
        self.fallback_enabled = (fallback_enabled if fallback_enabled is not None
                                 else settings.GEOMETRIC_FALLBACK_ENABLED)

    def measure(self, image: bytes, injured_side: Optional[KneeSide] = None,
                injury_context: Optional[InjuryType] = None,
                second_image: Optional[bytes] = None) -> AngleResult:
        if self.client is None:
            return self.geometric.estimate(image, injured_side)

        try:
            return self.client.estimate(image, injured_side, injury_context, second_image)
        except AngleEstimationError as e:
            if not (self.fallback_enabled and self.geometric.available and is_fallback_eligible(e)):
                raise
            logger.warning(f"Remote estimation unavailable ({e.kind.value}: {e.message}), using local pose detection")
            return self.geometric.estimate(image, injured_side)
