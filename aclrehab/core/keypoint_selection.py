"""
Leg selection policy feeding the knee angle calculator.

Precedence:
    1. the injured side, if all three of its joints clear the threshold;
    2. otherwise the opposite side under the same threshold;
    3. otherwise `NoReliableKeypointsError`.

An explicit side preference wins over a higher-confidence opposite leg.
"""

import logging
from typing import Optional, Sequence

from aclrehab.core.data_types import LegKeypoints, PoseCandidate
from aclrehab.helpers.enums import KneeSide
from aclrehab.helpers.exception_handler import NoReliableKeypointsError

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.3
# Side tried first when the caller does not name the injured knee
DEFAULT_PREFERRED_SIDE = KneeSide.RIGHT


def _is_reliable(leg: Optional[LegKeypoints], threshold: float) -> bool:
    if leg is None:
        return False
    return all(kp.is_reliable(threshold) for kp in (leg.hip, leg.knee, leg.ankle))


def select_leg_keypoints(
    candidate: PoseCandidate,
    injured_side: Optional[KneeSide] = None,
    threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> LegKeypoints:
    """
    Pick the leg to measure from one detected skeleton.

    Args:
        candidate: Skeleton with named joints
        injured_side: Side to prefer; right is tried first when None
        threshold: Each of hip, knee and ankle must have confidence above this

    Raises:
        NoReliableKeypointsError: If neither leg clears the threshold.
    """
    primary = injured_side or DEFAULT_PREFERRED_SIDE
    for side in (primary, primary.opposite):
        leg = candidate.leg(side)
        if _is_reliable(leg, threshold):
            if side is not primary:
                logger.info(f"Preferred {primary.value} leg below threshold {threshold}, using {side.value} leg")
            return leg

    raise NoReliableKeypointsError(f"No leg has hip, knee and ankle above confidence {threshold}")


def select_from_candidates(
    candidates: Sequence[PoseCandidate],
    injured_side: Optional[KneeSide] = None,
    threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> LegKeypoints:
    """Apply `select_leg_keypoints` to the first (most prominent) detected skeleton."""
    if not candidates:
        raise NoReliableKeypointsError("No body detected in image")
    return select_leg_keypoints(candidates[0], injured_side=injured_side, threshold=threshold)
