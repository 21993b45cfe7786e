import logging
import logging.config
import os
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.cors import CORSMiddleware

from aclrehab.ai_agent.gemini_client import GeminiClient
from aclrehab.ai_agent.knee_angle_agent import KneeAngleAgent
from aclrehab.api.api_router import router
from aclrehab.core.config import settings
from aclrehab.core.detector import PoseDetector
from aclrehab.db.base import engine
from aclrehab.helpers.exception_handler import CustomException, InvalidInputError, http_exception_handler
from aclrehab.models import Base

if os.path.exists(settings.LOGGING_CONFIG_FILE):
    logging.config.fileConfig(settings.LOGGING_CONFIG_FILE, disable_existing_loggers=False)

logger = logging.getLogger(__name__)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = '.'.join(str(part) for part in first.get('loc', ()) if part != 'body')
    message = f"{location}: {first.get('msg')}" if location else str(first.get('msg', 'Invalid request'))
    logger.info(f"{request.method} {request.url.path} rejected: {message}")
    return JSONResponse(
        status_code=InvalidInputError.http_code,
        content=jsonable_encoder({'success': False, 'code': InvalidInputError.code, 'message': message}),
    )


def create_knee_angle_agent() -> Optional[KneeAngleAgent]:
    if not settings.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY is not set, knee angle estimation is disabled")
        return None
    return KneeAngleAgent(GeminiClient())


def get_application(knee_angle_agent: Optional[KneeAngleAgent] = None,
                    pose_detector: Optional[PoseDetector] = None,
                    create_tables: bool = True) -> FastAPI:
    """
    Build the API.

    Args:
        knee_angle_agent: Estimation backend; built from settings when None.
        pose_detector: Optional local detector enabling the geometric fallback.
        create_tables: Create missing tables on the configured engine.
    """
    if create_tables:
        Base.metadata.create_all(bind=engine)

    application = FastAPI(
        title=settings.PROJECT_NAME, docs_url="/docs", redoc_url='/re-docs',
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        description='''
        ACL rehabilitation tracker backend
            - Anonymous sign-in with JWT
            - Knee angle estimation from photos (Gemini)
            - Profile, measurements and progress
        '''
    )
    application.state.knee_angle_agent = knee_angle_agent or create_knee_angle_agent()
    application.state.pose_detector = pose_detector

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.include_router(router, prefix=settings.API_PREFIX)
    application.add_exception_handler(CustomException, http_exception_handler)
    application.add_exception_handler(RequestValidationError, validation_exception_handler)

    @application.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "services": {
                "database": "connected",
                "knee_angle_estimation": "enabled" if application.state.knee_angle_agent else "disabled"
            }
        }

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    application.mount("/static/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

    return application


app = get_application()
if __name__ == '__main__':
    uvicorn.run(app, host="0.0.0.0", port=8000)
