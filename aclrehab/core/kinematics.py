"""
Kinematics Module.

Knee angle from three 2D keypoints. Every path that turns joint positions into
a knee angle (remote fallback, on-device detection, preview overlay) goes
through `compute_knee_angle` so the reported convention never diverges.
"""

import math
from typing import Protocol

import numpy as np


class Point2D(Protocol):
    x: float
    y: float


# Vectors shorter than this are treated as zero-length
DEGENERATE_EPSILON = 1e-9


def _to_array(point: Point2D) -> np.ndarray:
    return np.array([point.x, point.y], dtype=np.float64)


def is_degenerate(hip: Point2D, knee: Point2D, ankle: Point2D) -> bool:
    """
    True if the angle at the knee is undefined: a non-finite coordinate, or
    hip or ankle coinciding with the knee.
    """
    coords = (hip.x, hip.y, knee.x, knee.y, ankle.x, ankle.y)
    if not all(math.isfinite(c) for c in coords):
        return True
    p_knee = _to_array(knee)
    return (
        np.linalg.norm(_to_array(hip) - p_knee) <= DEGENERATE_EPSILON
        or np.linalg.norm(_to_array(ankle) - p_knee) <= DEGENERATE_EPSILON
    )


def calculate_interior_angle(hip: Point2D, knee: Point2D, ankle: Point2D) -> float:
    """
    Angle at the knee formed by hip-knee-ankle, in degrees.

    180 means hip, knee and ankle are collinear (straight leg).

    Raises:
        ValueError: If the inputs are degenerate (see `is_degenerate`).
    """
    if is_degenerate(hip, knee, ankle):
        raise ValueError("Degenerate keypoints: hip or ankle coincides with knee")

    p_knee = _to_array(knee)
    v1 = _to_array(hip) - p_knee
    v2 = _to_array(ankle) - p_knee

    cos_angle = np.dot(v1, v2) / (np.linalg.norm(v1) * np.linalg.norm(v2))
    cos_angle = np.clip(cos_angle, -1.0, 1.0)  # Handle floating point errors

    return float(np.degrees(np.arccos(cos_angle)))


def compute_knee_angle(hip: Point2D, knee: Point2D, ankle: Point2D) -> int:
    """
    Knee flexion in whole degrees: 0 for a fully straight leg, 90 for a right angle.

    Works in pixel or normalized coordinates alike, and is unaffected by a
    Y-axis flip applied to all three points.

    Args:
        hip: Hip keypoint
        knee: Knee keypoint (angle vertex)
        ankle: Ankle keypoint

    Returns:
        ``round(180 - interior_angle)``

    Raises:
        ValueError: If the inputs are degenerate. Callers are expected to check
            `is_degenerate` first and report invalid input.
    """
    interior = calculate_interior_angle(hip, knee, ankle)
    return int(round(180.0 - interior))
