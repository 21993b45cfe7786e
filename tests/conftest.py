import io
import os
import tempfile

os.environ['SQL_DATABASE_URL'] = 'sqlite://'
os.environ['UPLOAD_DIR'] = tempfile.mkdtemp(prefix='aclrehab-uploads-')
os.environ['GEMINI_API_KEY'] = ''
os.environ['ESTIMATION_BACKEND_URL'] = ''
os.environ['SECRET_KEY'] = 'test-secret'

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from aclrehab.ai_agent.gemini_client import GeminiClient
from aclrehab.ai_agent.knee_angle_agent import KneeAngleAgent
from aclrehab.db.base import get_db
from aclrehab.main import get_application
from aclrehab.models import Base
from aclrehab.services.srv_photo_storage import PhotoStorageService, get_photo_storage


class FakeGeminiClient(GeminiClient):
    """GeminiClient answering with canned text; JSON extraction stays real."""

    def __init__(self, text='{"angle": 45, "confidence": 0.9}', error=None):
        self.model_name = 'fake-gemini'
        self.timeout = 1
        self.text = text
        self.error = error
        self.calls = []

    def generate_content_with_images(self, prompt, images, temperature=0.1, max_tokens=None,
                                     mime_type='image/jpeg'):
        self.calls.append({'prompt': prompt, 'images': list(images)})
        if self.error is not None:
            raise self.error
        return self.text


def make_jpeg(width=64, height=48, color=(200, 120, 80), image_format='JPEG'):
    buffer = io.BytesIO()
    Image.new('RGB', (width, height), color).save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes():
    return make_jpeg()


@pytest.fixture
def fake_gemini():
    return FakeGeminiClient()


@pytest.fixture
def agent(fake_gemini):
    return KneeAngleAgent(fake_gemini)


@pytest.fixture
def db_session():
    engine = create_engine('sqlite://', connect_args={'check_same_thread': False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def photo_storage(tmp_path):
    return PhotoStorageService(upload_dir=str(tmp_path), jpeg_quality=80)


@pytest.fixture
def app(agent, db_session, photo_storage):
    application = get_application(knee_angle_agent=agent, create_tables=False)
    application.dependency_overrides[get_db] = lambda: db_session
    application.dependency_overrides[get_photo_storage] = lambda: photo_storage
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client):
    response = client.post('/api/auth/anonymous')
    assert response.status_code == 200
    token = response.json()['data']['access_token']
    return {'Authorization': f'Bearer {token}'}
