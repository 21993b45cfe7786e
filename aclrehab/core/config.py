import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '../../'))
load_dotenv(os.path.join(BASE_DIR, '.env'))


class Settings(BaseSettings):
    PROJECT_NAME: str = os.getenv('PROJECT_NAME', 'ACL REHAB TRACKER')
    SECRET_KEY: str = os.getenv('SECRET_KEY', 'change-me')
    API_PREFIX: str = '/api'
    BACKEND_CORS_ORIGINS: List[str] = ['*']
    DATABASE_URL: str = os.getenv('SQL_DATABASE_URL', 'sqlite:///' + os.path.join(BASE_DIR, 'aclrehab.db'))
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 60 * 60 * 24 * 30  # Anonymous sessions last 30 days
    SECURITY_ALGORITHM: str = 'HS256'
    LOGGING_CONFIG_FILE: str = os.path.join(BASE_DIR, 'logging.ini')
    UPLOAD_DIR: str = os.getenv('UPLOAD_DIR', os.path.join(BASE_DIR, 'static', 'uploads'))

    # Gemini / knee angle estimation backend
    GEMINI_API_KEY: Optional[str] = os.getenv('GEMINI_API_KEY')
    GEMINI_MODEL_NAME: str = os.getenv('GEMINI_MODEL_NAME', 'gemini-3-flash-preview')
    GEMINI_TEMPERATURE: float = float(os.getenv('GEMINI_TEMPERATURE', '0.1'))
    GEMINI_MAX_OUTPUT_TOKENS: int = int(os.getenv('GEMINI_MAX_OUTPUT_TOKENS', '4096'))
    ESTIMATION_TIMEOUT_SECONDS: float = float(os.getenv('ESTIMATION_TIMEOUT_SECONDS', '120'))

    # Estimation client
    ESTIMATION_BACKEND_URL: Optional[str] = os.getenv('ESTIMATION_BACKEND_URL')
    MAX_IMAGE_DIMENSION: int = int(os.getenv('MAX_IMAGE_DIMENSION', '1024'))
    JPEG_QUALITY: int = int(os.getenv('JPEG_QUALITY', '80'))
    DEFAULT_RESULT_CONFIDENCE: float = float(os.getenv('DEFAULT_RESULT_CONFIDENCE', '0.8'))
    KEYPOINT_CONFIDENCE_THRESHOLD: float = float(os.getenv('KEYPOINT_CONFIDENCE_THRESHOLD', '0.3'))
    GEOMETRIC_FALLBACK_ENABLED: bool = os.getenv('GEOMETRIC_FALLBACK_ENABLED', 'true').lower() == 'true'


settings = Settings()
