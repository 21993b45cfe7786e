"""
Gemini API Client wrapper for ACL Rehab.
Handles connection to Google Gemini API and multimodal message generation.
"""
import json
import logging
import re
from typing import Any, Dict, Optional, Sequence

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from aclrehab.core.config import settings

logger = logging.getLogger(__name__)

# finish_reason 1 = STOP (normal), 2 = MAX_TOKENS
ACCEPTED_FINISH_REASONS = (1, 2)


class GeminiClientError(Exception):
    """Gemini call failed for a reason not covered by a subclass."""


class GeminiRateLimitError(GeminiClientError):
    """Quota or rate limit exhausted (HTTP 429 / RESOURCE_EXHAUSTED)."""


class GeminiTimeoutError(GeminiClientError):
    """The request exceeded its deadline."""


class GeminiResponseError(GeminiClientError):
    """The model answered, but the answer is empty, blocked or not parseable."""


def _classify_error(error: Exception) -> GeminiClientError:
    message = str(error)
    if isinstance(error, google_exceptions.ResourceExhausted) or \
            '429' in message or 'RESOURCE_EXHAUSTED' in message or 'exhausted' in message:
        return GeminiRateLimitError(message)
    if isinstance(error, (google_exceptions.DeadlineExceeded, TimeoutError)) or \
            'DEADLINE_EXCEEDED' in message or 'timed out' in message.lower():
        return GeminiTimeoutError(message)
    return GeminiClientError(message)


class GeminiClient:
    """
    Wrapper for Google Gemini API.
    Handles API key configuration, model initialization, and content generation.
    """

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None,
                 timeout: Optional[float] = None):
        """
        Initialize Gemini client.

        Args:
            api_key: Google Gemini API key. If None, reads GEMINI_API_KEY from settings.
            model_name: Gemini model to use. If None, reads GEMINI_MODEL_NAME from settings.
            timeout: Per-request deadline in seconds.
        """
        self.api_key = api_key or settings.GEMINI_API_KEY
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY not found in environment variables")

        self.model_name = model_name or settings.GEMINI_MODEL_NAME
        self.timeout = timeout or settings.ESTIMATION_TIMEOUT_SECONDS
        self._configure_api()
        self.model = genai.GenerativeModel(self.model_name)
        logger.info(f"GeminiClient initialized with model: {self.model_name}")

    def _configure_api(self):
        """Configure Gemini API with API key."""
        genai.configure(api_key=self.api_key)
        logger.debug("Gemini API configured successfully")

    def generate_content_with_images(
        self,
        prompt: str,
        images: Sequence[bytes],
        temperature: float = 0.1,
        max_tokens: Optional[int] = None,
        mime_type: str = 'image/jpeg'
    ) -> str:
        """
        Generate content using Gemini API with one or more inline images.

        Args:
            prompt: Input prompt text, sent after the images.
            images: Encoded image payloads.
            temperature: Sampling temperature (0.0-1.0).
            max_tokens: Maximum tokens in response.
            mime_type: MIME type of every image.

        Returns:
            Generated text response.

        Raises:
            GeminiRateLimitError: Quota exhausted.
            GeminiTimeoutError: Deadline exceeded.
            GeminiResponseError: Empty or blocked response.
            GeminiClientError: Any other API failure.
        """
        parts = [{'mime_type': mime_type, 'data': image} for image in images]
        parts.append(prompt)

        generation_config = genai.types.GenerationConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
        )

        logger.info(f"Generating content with {len(images)} image(s) (temp={temperature}, model={self.model_name})")
        try:
            response = self.model.generate_content(
                parts,
                generation_config=generation_config,
                request_options={'timeout': self.timeout}
            )
        except Exception as e:
            logger.error(f"Gemini API error with image: {str(e)}", exc_info=True)
            raise _classify_error(e) from e

        if not response.candidates:
            logger.error("Gemini returned no candidates")
            raise GeminiResponseError("Gemini API returned no candidates")

        candidate = response.candidates[0]
        finish_reason = getattr(candidate, 'finish_reason', None)
        if finish_reason and finish_reason not in ACCEPTED_FINISH_REASONS:
            logger.error(f"Gemini content blocked. finish_reason: {finish_reason}")
            raise GeminiResponseError(f"Content was blocked by Gemini (finish_reason={finish_reason})")

        if not candidate.content or not candidate.content.parts:
            logger.error("Gemini candidate has no content parts")
            raise GeminiResponseError("Gemini API returned empty content")

        response_text = "".join(getattr(part, 'text', '') for part in candidate.content.parts)
        if not response_text:
            logger.error("Gemini returned empty response text")
            raise GeminiResponseError("Empty response from Gemini API")

        logger.info(f"Successfully generated content with image ({len(response_text)} chars)")
        return response_text

    def generate_json_content_with_images(
        self,
        prompt: str,
        images: Sequence[bytes],
        temperature: float = 0.1,
        max_tokens: Optional[int] = 4096
    ) -> Dict[str, Any]:
        """
        Generate structured JSON content using Gemini API with image input.

        Returns:
            Parsed JSON dictionary.

        Raises:
            GeminiResponseError: If the response holds no parseable JSON object.
        """
        if "json" not in prompt.lower():
            prompt = f"{prompt}\n\nRespond with valid JSON only."

        response_text = self.generate_content_with_images(
            prompt=prompt,
            images=images,
            temperature=temperature,
            max_tokens=max_tokens
        )
        logger.info(f"AI response: {response_text[:500]}")
        return self.extract_json(response_text)

    @staticmethod
    def extract_json(response_text: str) -> Dict[str, Any]:
        """
        Pull the JSON object out of a model answer.

        Markdown code fences are stripped and the outermost ``{...}`` span is parsed.
        """
        cleaned = re.sub(r'```json\s*', '', response_text)
        cleaned = re.sub(r'```\s*', '', cleaned).strip()

        match = re.search(r'\{[\s\S]*\}', cleaned)
        if not match:
            logger.error(f"Could not find JSON in response: {cleaned[:200]}")
            raise GeminiResponseError(f"Invalid response format from AI: {cleaned[:200]}")

        try:
            parsed = json.loads(match.group(0))
        except (ValueError, RecursionError) as e:
            logger.error(f"JSON parse failed, response may be truncated: {match.group(0)[:500]}")
            raise GeminiResponseError("AI response was truncated. Please try again.") from e

        if not isinstance(parsed, dict):
            raise GeminiResponseError("AI response is not a JSON object")
        return parsed
