"""
Data Types Module for the knee angle core.

Joint naming shared by pose detectors and the keypoint selection policy.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, Optional, Tuple

from aclrehab.helpers.enums import KneeSide
from aclrehab.schemas.sche_knee_angle import Keypoint


class LegJoint(str, Enum):
    HIP = 'hip'
    KNEE = 'knee'
    ANKLE = 'ankle'


class PoseLandmarkIndex(IntEnum):
    """MediaPipe Pose landmark indices of the leg joints."""
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28


LEG_LANDMARKS: Dict[KneeSide, Tuple[PoseLandmarkIndex, PoseLandmarkIndex, PoseLandmarkIndex]] = {
    KneeSide.LEFT: (PoseLandmarkIndex.LEFT_HIP, PoseLandmarkIndex.LEFT_KNEE, PoseLandmarkIndex.LEFT_ANKLE),
    KneeSide.RIGHT: (PoseLandmarkIndex.RIGHT_HIP, PoseLandmarkIndex.RIGHT_KNEE, PoseLandmarkIndex.RIGHT_ANKLE),
}


def joint_name(side: KneeSide, joint: LegJoint) -> str:
    """Canonical joint key, e.g. ``left_knee``."""
    return f"{side.value}_{joint.value}"


@dataclass(frozen=True)
class LegKeypoints:
    """Hip, knee and ankle of one leg."""
    side: KneeSide
    hip: Keypoint
    knee: Keypoint
    ankle: Keypoint

    def min_confidence(self) -> float:
        return min(self.hip.confidence, self.knee.confidence, self.ankle.confidence)


@dataclass(frozen=True)
class PoseCandidate:
    """
    One skeleton yielded by a pose detector.

    Attributes:
        joints: Keypoints keyed by canonical joint name (``left_hip`` ...).
            A joint the detector did not report is simply absent.
        image_width: Width of the analysed image in pixels (0 if unknown).
        image_height: Height of the analysed image in pixels (0 if unknown).
    """
    joints: Dict[str, Keypoint] = field(default_factory=dict)
    image_width: int = 0
    image_height: int = 0

    def get(self, side: KneeSide, joint: LegJoint) -> Optional[Keypoint]:
        return self.joints.get(joint_name(side, joint))

    def leg(self, side: KneeSide) -> Optional[LegKeypoints]:
        hip = self.get(side, LegJoint.HIP)
        knee = self.get(side, LegJoint.KNEE)
        ankle = self.get(side, LegJoint.ANKLE)
        if hip is None or knee is None or ankle is None:
            return None
        return LegKeypoints(side=side, hip=hip, knee=knee, ankle=ankle)
