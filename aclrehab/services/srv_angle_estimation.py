"""
Angle Estimation Service - client side of the knee angle estimation boundary.

`AngleEstimationClient` prepares the photo, sends one request through an
`AngleEstimationTransport` and validates the answer. It performs no retries:
every failure reaches the caller as an `AngleEstimationError` whose ``kind``
tells the caller what to do next.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union

import requests
from pydantic import ValidationError

from aclrehab.ai_agent.knee_angle_agent import KneeAngleAgent
from aclrehab.core.config import settings
from aclrehab.core.image_processing import prepare_image
from aclrehab.helpers.enums import InjuryType, KneeSide
from aclrehab.helpers.exception_handler import (
    AngleEstimationError, EstimationTimeoutError, InternalEstimationError,
    InvalidInputError, MalformedResponseError, MissingAngleError, error_from_wire,
)
from aclrehab.schemas.sche_knee_angle import (
    AnalyzeKneeAngleRequest, AngleEstimationRequest, AngleResult, parse_angle_response,
)

logger = logging.getLogger(__name__)

ANALYZE_PATH = '/api/knee-angle/analyze'


# ==================== TRANSPORTS ====================

class AngleEstimationTransport(ABC):
    """Delivers one encoded request to an estimation backend."""

    @abstractmethod
    def send(self, payload: Dict[str, Any]) -> Any:
        """
        Send ``payload`` and return the raw success body.

        Raises:
            AngleEstimationError: When the backend or the transport reports a failure.
        """
        pass


class HttpAngleTransport(AngleEstimationTransport):
    """Transport posting JSON to a remote estimation backend."""

    def __init__(self, base_url: str, access_token: Optional[str] = None,
                 timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.url = base_url.rstrip('/') + ANALYZE_PATH
        self.timeout = timeout or settings.ESTIMATION_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        if access_token:
            self.session.headers.update({'Authorization': f'Bearer {access_token}'})

    def send(self, payload: Dict[str, Any]) -> Any:
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.Timeout as e:
            logger.error(f"Estimation request timed out after {self.timeout}s")
            raise EstimationTimeoutError() from e
        except requests.RequestException as e:
            logger.error(f"Estimation request failed: {e}")
            raise InternalEstimationError(
                "Could not analyze the photo. Please check your connection and try again."
            ) from e

        if response.status_code >= 400:
            code, message = None, None
            try:
                body = response.json()
                if isinstance(body, dict):
                    code, message = body.get('code'), body.get('message')
            except ValueError:
                pass
            logger.error(f"Estimation backend answered {response.status_code}: code={code}, message={message}")
            raise error_from_wire(code, message, http_status=response.status_code)

        return response.content


class AgentAngleTransport(AngleEstimationTransport):
    """Transport calling a `KneeAngleAgent` in the same process."""

    def __init__(self, agent: KneeAngleAgent):
        self.agent = agent

    def send(self, payload: Dict[str, Any]) -> Any:
        try:
            request = AnalyzeKneeAngleRequest.model_validate(payload)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid estimation request: {e.errors()[0]['msg']}")
        return self.agent.analyze(request).model_dump(exclude_none=True)


# ==================== CLIENT ====================

def _coerce_enum(enum_cls, value, field_name: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidInputError(f"Invalid {field_name}: {value!r}")


class AngleEstimationClient:
    """
    Estimate a knee angle from a photo.

    Args:
        transport: Where requests are sent.
        max_dimension: Longer image side after resizing.
        jpeg_quality: JPEG quality of the transmitted image.
        default_confidence: Confidence reported when the backend omits one.
    """

    def __init__(self, transport: AngleEstimationTransport,
                 max_dimension: Optional[int] = None,
                 jpeg_quality: Optional[int] = None,
                 default_confidence: Optional[float] = None):
        self.transport = transport
        self.max_dimension = max_dimension or settings.MAX_IMAGE_DIMENSION
        self.jpeg_quality = jpeg_quality or settings.JPEG_QUALITY
        self.default_confidence = (default_confidence if default_confidence is not None
                                   else settings.DEFAULT_RESULT_CONFIDENCE)

    def build_request(self, image: bytes,
                      injured_side: Union[KneeSide, str, None] = None,
                      injury_context: Union[InjuryType, str, None] = None,
                      second_image: Optional[bytes] = None) -> AngleEstimationRequest:
        """Resize and re-encode the photo(s) and attach the optional patient context."""
        side = _coerce_enum(KneeSide, injured_side, 'injured side')
        context = _coerce_enum(InjuryType, injury_context, 'injury type')
        prepared = prepare_image(image, self.max_dimension, self.jpeg_quality)
        prepared_second = None
        if second_image is not None:
            prepared_second = prepare_image(second_image, self.max_dimension, self.jpeg_quality)
        return AngleEstimationRequest(
            image=prepared,
            injured_side=side,
            injury_context=context,
            second_image=prepared_second,
        )

    def estimate(self, image: bytes,
                 injured_side: Union[KneeSide, str, None] = None,
                 injury_context: Union[InjuryType, str, None] = None,
                 second_image: Optional[bytes] = None) -> AngleResult:
        """
        Raises:
            InvalidInputError: Empty or undecodable image, unknown side or injury tag.
            UnauthenticatedError: The backend rejected the caller's identity.
            NoReliableKeypointsError: The backend could not find the leg.
            RateLimitedError: The backend is out of quota.
            EstimationTimeoutError: The backend exceeded its deadline.
            InternalEstimationError: Anything else, including malformed responses.
        """
        request = self.build_request(image, injured_side, injury_context, second_image)
        logger.info(f"Estimating knee angle: {len(request.image)} bytes, side={side_value(request.injured_side)}")
        try:
            body = self.transport.send(request.to_wire())
        except AngleEstimationError:
            raise
        except Exception as e:
            logger.error(f"Unexpected transport failure: {e}", exc_info=True)
            raise InternalEstimationError(str(e)) from e

        result = parse_angle_response(body, default_confidence=self.default_confidence)
        logger.info(f"Knee angle result: {result.angle_degrees} (confidence={result.confidence})")
        return result

    async def estimate_async(self, image: bytes,
                             injured_side: Union[KneeSide, str, None] = None,
                             injury_context: Union[InjuryType, str, None] = None,
                             second_image: Optional[bytes] = None) -> AngleResult:
        """`estimate` off the event loop. If the awaiting task is cancelled, no result is delivered."""
        return await asyncio.to_thread(self.estimate, image, injured_side, injury_context, second_image)


def side_value(side: Optional[KneeSide]) -> Optional[str]:
    return side.value if side else None


def is_fallback_eligible(error: AngleEstimationError) -> bool:
    """True for transport-level failures where the remote estimate is simply unavailable."""
    if isinstance(error, (MalformedResponseError, MissingAngleError)):
        return False
    return isinstance(error, (InternalEstimationError, EstimationTimeoutError))
