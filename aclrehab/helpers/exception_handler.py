import logging
from typing import Optional, Type

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from aclrehab.helpers.enums import ErrorKind

logger = logging.getLogger(__name__)


class CustomException(Exception):
    http_code = 400
    code = '400'
    message = 'Bad request'

    def __init__(self, http_code: Optional[int] = None, code: Optional[str] = None, message: Optional[str] = None):
        self.http_code = http_code if http_code else self.http_code
        self.code = code if code else self.code
        self.message = message if message else self.message
        super().__init__(self.message)


async def http_exception_handler(request: Request, exc: CustomException):
    if exc.http_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return JSONResponse(
        status_code=exc.http_code,
        content=jsonable_encoder({'success': False, 'code': exc.code, 'message': exc.message}),
    )


# ==================== KNEE ANGLE ESTIMATION ====================

class AngleEstimationError(CustomException):
    """
    Base of the knee angle estimation failure taxonomy.

    ``kind`` discriminates the failure for callers, ``code`` is the wire code
    the estimation backend answers with, and ``user_message`` is what a caller
    should show to the patient.
    """
    kind = ErrorKind.INTERNAL
    http_code = 500
    code = 'internal'
    user_message = 'Could not analyze the photo. Please try again.'

    def __init__(self, message: Optional[str] = None):
        super().__init__(http_code=self.http_code, code=self.code, message=message or self.user_message)

    @property
    def is_internal(self) -> bool:
        return isinstance(self, InternalEstimationError)


class InvalidInputError(AngleEstimationError):
    kind = ErrorKind.INVALID_INPUT
    http_code = 400
    code = 'invalid-argument'
    user_message = 'The photo could not be read. Please take another photo.'


class UnauthenticatedError(AngleEstimationError):
    kind = ErrorKind.UNAUTHENTICATED
    http_code = 401
    code = 'unauthenticated'
    user_message = 'Authentication error. Please restart the app and try again.'


class NoReliableKeypointsError(AngleEstimationError):
    kind = ErrorKind.NO_RELIABLE_KEYPOINTS
    http_code = 422
    code = 'failed-precondition'
    user_message = 'Could not detect your leg clearly. Please reposition your leg and take another photo.'


class RateLimitedError(AngleEstimationError):
    kind = ErrorKind.RATE_LIMITED
    http_code = 429
    code = 'resource-exhausted'
    user_message = 'Too many requests. Please wait a moment and try again.'


class EstimationTimeoutError(AngleEstimationError):
    kind = ErrorKind.TIMEOUT
    http_code = 504
    code = 'deadline-exceeded'
    user_message = 'Analysis took too long. Please try again with a clearer photo.'


class InternalEstimationError(AngleEstimationError):
    pass


class MalformedResponseError(InternalEstimationError):
    kind = ErrorKind.MALFORMED_RESPONSE


class MissingAngleError(InternalEstimationError):
    kind = ErrorKind.MISSING_ANGLE
    user_message = 'AI could not detect knee angle. Please try repositioning your leg and take another photo.'


WIRE_CODE_ERRORS = {
    'invalid-argument': InvalidInputError,
    'unauthenticated': UnauthenticatedError,
    'failed-precondition': NoReliableKeypointsError,
    'resource-exhausted': RateLimitedError,
    'deadline-exceeded': EstimationTimeoutError,
    'internal': InternalEstimationError,
}

HTTP_STATUS_ERRORS = {
    400: InvalidInputError,
    401: UnauthenticatedError,
    403: UnauthenticatedError,
    422: NoReliableKeypointsError,
    429: RateLimitedError,
    504: EstimationTimeoutError,
}


def error_from_wire(code: Optional[str], message: Optional[str] = None,
                    http_status: Optional[int] = None) -> AngleEstimationError:
    """Map a backend failure (wire code first, HTTP status second) onto the taxonomy."""
    error_cls: Type[AngleEstimationError] = InternalEstimationError
    if code and code in WIRE_CODE_ERRORS:
        error_cls = WIRE_CODE_ERRORS[code]
    elif http_status in HTTP_STATUS_ERRORS:
        error_cls = HTTP_STATUS_ERRORS[http_status]
    return error_cls(message)
