"""
Knee Angle AI Agent - the angle estimation backend.
Uses Gemini vision to measure knee flexion from one or two photos of a leg.
"""
import base64
import binascii
import logging
from typing import List, Optional

from aclrehab.ai_agent.gemini_client import (
    GeminiClient, GeminiClientError, GeminiRateLimitError, GeminiTimeoutError,
)
from aclrehab.core.config import settings
from aclrehab.helpers.enums import InjuryType, KneeSide
from aclrehab.helpers.exception_handler import (
    EstimationTimeoutError, InternalEstimationError, InvalidInputError,
    NoReliableKeypointsError, RateLimitedError,
)
from aclrehab.schemas.sche_knee_angle import (
    KEYPOINT_NAMES, AnalyzeKneeAngleRequest, AnalyzeKneeAngleResponse, WireKeypoint, angle_number, as_number,
)

logger = logging.getLogger(__name__)

ANGLE_CONVENTION = """MEDICAL CONVENTION:
- 0 degrees = leg is completely STRAIGHT (thigh and shin form a straight line)
- 45 degrees = moderate bend
- 90 degrees = right angle (L-shape)
- 135 degrees = deeply bent (heel near buttock)"""

SINGLE_IMAGE_PROMPT = """Measure the knee flexion angle in this photo of a leg.

Look at the angle formed at the KNEE JOINT between:
- The THIGH (femur) - from hip to knee
- The SHIN (tibia) - from knee to ankle

{convention}

Focus on the actual bend at the knee joint. If the leg looks straight, it IS close to 0 degrees.{context}

If no leg is visible, return {{"error": "<reason>"}}.
Return ONLY valid JSON: {{"angle":N,"confidence":C}}"""

DUAL_IMAGE_PROMPT = """Measure the knee flexion angle using these TWO photos of the same leg.

Look at the angle formed at the KNEE JOINT between:
- The THIGH (femur) - from hip to knee
- The SHIN (tibia) - from knee to ankle

Use both images to get a better understanding of the true angle.

{convention}{context}

If no leg is visible, return {{"error": "<reason>"}}.
Return ONLY valid JSON: {{"angle":N,"confidence":C}}"""


class KneeAngleAgent:
    """
    AI Agent answering knee angle estimation requests.

    Failures are raised as estimation errors carrying the wire code the caller
    sees (``invalid-argument``, ``failed-precondition``, ``resource-exhausted``,
    ``deadline-exceeded``, ``internal``).
    """

    def __init__(self, gemini_client: GeminiClient, temperature: Optional[float] = None,
                 max_tokens: Optional[int] = None):
        self.gemini_client = gemini_client
        self.temperature = temperature if temperature is not None else settings.GEMINI_TEMPERATURE
        self.max_tokens = max_tokens or settings.GEMINI_MAX_OUTPUT_TOKENS
        logger.info("KneeAngleAgent initialized")

    @staticmethod
    def build_patient_context(injured_knee: Optional[KneeSide], injury_type: Optional[InjuryType]) -> str:
        if not injured_knee and not injury_type:
            return ""
        context = "\n\nPATIENT CONTEXT:"
        if injured_knee:
            context += (f"\n- The patient's {injured_knee.value.upper()} knee is the injured one. "
                        f"If both legs are visible, focus on the {injured_knee.value} leg.")
        if injury_type:
            context += f"\n- The patient had {injury_type.description}. This is for rehabilitation tracking."
        return context

    def build_prompt(self, request: AnalyzeKneeAngleRequest) -> str:
        template = DUAL_IMAGE_PROMPT if request.image_base64_2 else SINGLE_IMAGE_PROMPT
        return template.format(
            convention=ANGLE_CONVENTION,
            context=self.build_patient_context(request.injured_knee, request.injury_type),
        )

    @staticmethod
    def _decode_images(request: AnalyzeKneeAngleRequest) -> List[bytes]:
        images = []
        for field_name, encoded in (('imageBase64', request.image_base64), ('imageBase64_2', request.image_base64_2)):
            if not encoded:
                continue
            try:
                decoded = base64.b64decode(encoded, validate=True)
            except (binascii.Error, ValueError):
                raise InvalidInputError(f"{field_name} is not valid base64")
            if not decoded:
                raise InvalidInputError(f"{field_name} is empty")
            images.append(decoded)
        return images

    def analyze(self, request: AnalyzeKneeAngleRequest) -> AnalyzeKneeAngleResponse:
        """
        Estimate the knee angle for one request.

        The angle is rounded but not clamped; range enforcement belongs to the
        consumer. Confidence and joint coordinates are only returned when the
        model supplied them.
        """
        images = self._decode_images(request)
        prompt = self.build_prompt(request)

        try:
            parsed = self.gemini_client.generate_json_content_with_images(
                prompt=prompt,
                images=images,
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
        except GeminiRateLimitError as e:
            raise RateLimitedError() from e
        except GeminiTimeoutError as e:
            raise EstimationTimeoutError() from e
        except GeminiClientError as e:
            logger.error(f"Knee angle analysis failed: {str(e)}")
            raise InternalEstimationError(f"Failed to analyze image: {str(e)}") from e

        if parsed.get('error'):
            logger.info(f"Model declined to measure: {parsed['error']}")
            raise NoReliableKeypointsError(str(parsed['error']))

        angle = angle_number(parsed.get('angle'))
        if angle is None:
            raise InternalEstimationError("Invalid response structure from AI")

        keypoints = {}
        for name in KEYPOINT_NAMES:
            value = parsed.get(name)
            if not isinstance(value, dict):
                continue
            x, y = as_number(value.get('x')), as_number(value.get('y'))
            if x is not None and y is not None:
                keypoints[name] = WireKeypoint(x=x, y=y, confidence=as_number(value.get('confidence')))

        response = AnalyzeKneeAngleResponse(
            angle=angle if isinstance(angle, int) else int(round(angle)),
            confidence=as_number(parsed.get('confidence')),
            **keypoints
        )
        logger.info(f"Knee angle estimated: {response.angle} (confidence={response.confidence})")
        return response
