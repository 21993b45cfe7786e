"""
Pose detector interface.

Pose detection itself runs outside this package (on device, or behind another
service); this module defines what the knee angle core consumes from it.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from aclrehab.core.data_types import LEG_LANDMARKS, LegJoint, PoseCandidate, joint_name
from aclrehab.schemas.sche_knee_angle import Keypoint


class PoseDetector(ABC):
    """
    A pose detection capability.

    Implementations return zero or more skeletons, most prominent first.
    Keypoint coordinates must be in one consistent space per call (pixels or
    normalized 0-1).
    """

    @abstractmethod
    def detect(self, image_bytes: bytes) -> List[PoseCandidate]:
        pass


def candidate_from_landmarks(
    landmarks: Sequence[Sequence[float]],
    image_width: int = 0,
    image_height: int = 0,
    flip_y: bool = False,
) -> PoseCandidate:
    """
    Build a `PoseCandidate` from a MediaPipe-style landmark list.

    Args:
        landmarks: One ``(x, y, visibility)`` triple per landmark index, in
            normalized 0-1 coordinates.
        image_width: When given together with ``image_height``, coordinates
            are converted to pixels.
        image_height: See ``image_width``.
        flip_y: Convert a bottom-left origin to top-left (``y -> 1 - y``).
    """
    joints = {}
    for side, indices in LEG_LANDMARKS.items():
        for joint, index in zip((LegJoint.HIP, LegJoint.KNEE, LegJoint.ANKLE), indices):
            if index >= len(landmarks):
                continue
            x, y, visibility = landmarks[index][:3]
            if flip_y:
                y = 1.0 - y
            if image_width and image_height:
                x, y = x * image_width, y * image_height
            confidence = max(0.0, min(1.0, float(visibility)))
            joints[joint_name(side, joint)] = Keypoint(x=x, y=y, confidence=confidence)

    return PoseCandidate(joints=joints, image_width=image_width, image_height=image_height)
