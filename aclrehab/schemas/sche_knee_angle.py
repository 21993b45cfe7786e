"""
Knee Angle Schemas - value objects and wire contract of the angle estimation boundary.

The decode step (`parse_angle_response`) is the single place where an
untrusted backend payload becomes an `AngleResult`; every leniency it applies
is documented here and nowhere else.
"""

import base64
import json
import logging
import math
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from aclrehab.helpers.enums import InjuryType, KneeSide
from aclrehab.helpers.exception_handler import MalformedResponseError, MissingAngleError

logger = logging.getLogger(__name__)

MIN_ANGLE_DEGREES = 0
MAX_ANGLE_DEGREES = 180
DEFAULT_RESULT_CONFIDENCE = 0.8
KEYPOINT_NAMES = ('hip', 'knee', 'ankle')


# ==================== VALUE OBJECTS ====================

class Keypoint(BaseModel):
    """A detected joint position. ``confidence == 0`` means "no detection"."""
    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0
    confidence: float = Field(0.0, ge=0.0, le=1.0)

    @property
    def is_unknown(self) -> bool:
        return self.confidence == 0.0

    def is_reliable(self, threshold: float) -> bool:
        return self.confidence > threshold


UNKNOWN_KEYPOINT = Keypoint(x=0.0, y=0.0, confidence=0.0)


class AngleEstimationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    image: bytes = Field(..., min_length=1)
    injured_side: Optional[KneeSide] = None
    injury_context: Optional[InjuryType] = None
    second_image: Optional[bytes] = None

    def to_wire(self) -> Dict[str, Any]:
        """Encode for the backend. Absent context fields are left out entirely."""
        payload: Dict[str, Any] = {'imageBase64': base64.b64encode(self.image).decode('ascii')}
        if self.second_image:
            payload['imageBase64_2'] = base64.b64encode(self.second_image).decode('ascii')
        if self.injured_side is not None:
            payload['injuredKnee'] = self.injured_side.value
        if self.injury_context is not None:
            payload['injuryType'] = self.injury_context.value
        return payload


class AngleResult(BaseModel):
    """
    Validated knee angle measurement.

    ``angle_degrees`` uses the flexion convention: 0 is a fully straight leg,
    larger values mean more bend. ``confidence_defaulted`` is True when the
    backend omitted a confidence and the documented default was used instead.
    """
    model_config = ConfigDict(frozen=True)

    angle_degrees: int = Field(..., ge=MIN_ANGLE_DEGREES, le=MAX_ANGLE_DEGREES)
    confidence: float = Field(..., ge=0.0, le=1.0)
    hip: Keypoint = UNKNOWN_KEYPOINT
    knee: Keypoint = UNKNOWN_KEYPOINT
    ankle: Keypoint = UNKNOWN_KEYPOINT
    confidence_defaulted: bool = False

    @property
    def has_keypoints(self) -> bool:
        return not all(getattr(self, name).is_unknown for name in KEYPOINT_NAMES)

    def to_wire(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {'angle': self.angle_degrees, 'confidence': self.confidence}
        for name in KEYPOINT_NAMES:
            keypoint = getattr(self, name)
            if not keypoint.is_unknown:
                payload[name] = {'x': keypoint.x, 'y': keypoint.y, 'confidence': keypoint.confidence}
        return payload


# ==================== BACKEND WIRE MODELS ====================

class AnalyzeKneeAngleRequest(BaseModel):
    """Request body accepted by the estimation backend."""
    model_config = ConfigDict(populate_by_name=True)

    image_base64: str = Field(..., alias='imageBase64', min_length=1)
    image_base64_2: Optional[str] = Field(None, alias='imageBase64_2')
    injured_knee: Optional[KneeSide] = Field(None, alias='injuredKnee')
    injury_type: Optional[InjuryType] = Field(None, alias='injuryType')


class WireKeypoint(BaseModel):
    x: float
    y: float
    confidence: Optional[float] = None


class AnalyzeKneeAngleResponse(BaseModel):
    angle: int
    confidence: Optional[float] = None
    hip: Optional[WireKeypoint] = None
    knee: Optional[WireKeypoint] = None
    ankle: Optional[WireKeypoint] = None


# ==================== DECODE ====================

def as_number(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or None if it is not a usable number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    if not math.isfinite(value):
        return None
    return value


def angle_number(value: Any) -> Optional[Union[int, float]]:
    """Like `as_number`, but integers of any size are kept exact."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return as_number(value)


def clamp_angle(angle: Union[int, float]) -> int:
    if not isinstance(angle, int):
        angle = int(round(angle))
    return max(MIN_ANGLE_DEGREES, min(MAX_ANGLE_DEGREES, angle))


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))


def _parse_keypoint(value: Any, fallback_confidence: float) -> Keypoint:
    if not isinstance(value, Mapping):
        return UNKNOWN_KEYPOINT
    x = as_number(value.get('x'))
    y = as_number(value.get('y'))
    if x is None and y is None:
        return UNKNOWN_KEYPOINT
    x = x if x is not None else 0.0
    y = y if y is not None else 0.0

    confidence = as_number(value.get('confidence'))
    if confidence is None:
        # Placeholder coordinates at the origin carry no detection
        if x == 0.0 and y == 0.0:
            return UNKNOWN_KEYPOINT
        confidence = fallback_confidence
    return Keypoint(x=x, y=y, confidence=_clamp_unit(confidence))


def parse_angle_response(payload: Any, default_confidence: float = DEFAULT_RESULT_CONFIDENCE) -> AngleResult:
    """
    Decode a backend success payload into an `AngleResult`.

    Steps, in order:
        1. payload must be a JSON object (raw ``str``/``bytes`` are parsed first),
           otherwise `MalformedResponseError`.
        2. ``angle`` must be a finite number, otherwise `MissingAngleError`.
        3. angle is rounded and clamped into [0, 180].
        4. a missing or non-numeric ``confidence`` becomes ``default_confidence``
           and the result is flagged ``confidence_defaulted``.
        5. each of hip/knee/ankle falls back to the unknown keypoint when absent
           or malformed; a missing ``x`` or ``y`` alone defaults to 0.
    """
    if isinstance(payload, (bytes, bytearray, str)):
        try:
            payload = json.loads(payload)
        except (ValueError, RecursionError) as e:
            raise MalformedResponseError(f"Response is not valid JSON: {e}")
    if not isinstance(payload, Mapping):
        raise MalformedResponseError(f"Expected a JSON object, got {type(payload).__name__}")

    angle = angle_number(payload.get('angle'))
    if angle is None:
        raise MissingAngleError(f"Response has no numeric angle: {payload.get('angle')!r}")

    confidence = as_number(payload.get('confidence'))
    confidence_defaulted = confidence is None
    if confidence_defaulted:
        logger.warning(f"Backend omitted confidence, using default {default_confidence}")
        confidence = default_confidence
    confidence = _clamp_unit(confidence)

    keypoints = {name: _parse_keypoint(payload.get(name), confidence) for name in KEYPOINT_NAMES}

    return AngleResult(
        angle_degrees=clamp_angle(angle),
        confidence=confidence,
        confidence_defaulted=confidence_defaulted,
        **keypoints
    )


# ==================== KEYPOINT ANGLE API ====================

class KeypointAngleRequest(BaseModel):
    """Joints of one detected skeleton, keyed ``left_hip``, ``right_knee`` ..."""
    joints: Dict[str, Keypoint]
    injured_knee: Optional[KneeSide] = None
