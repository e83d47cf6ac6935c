"""
Pytest configuration and fixtures for the photo pipeline tests.
"""

import pytest
from fastapi.testclient import TestClient

from photo_pipeline.api import create_app
from photo_pipeline.core.access import AccessControl, JwtTokenVerifier
from photo_pipeline.core.config import Settings
from photo_pipeline.core.factories import ProcessingPipelineFactory
from photo_pipeline.core.services import (
    ImageTransformService,
    RedisWorkDispatcher,
    S3ObjectStore,
)
from photo_pipeline.testing.fakes import (
    TEST_JWT_SECRET,
    FakeLogger,
    FakeRedis,
    make_token,
    setup_test_s3_environment,
)

BUCKET = "photos"
ENDPOINT = "https://s3.example.test"


@pytest.fixture
def settings():
    """Settings wired for the fakes; nothing is read from the environment."""
    return Settings(
        _env_file=None,
        jwt_secret=TEST_JWT_SECRET,
        s3_bucket=BUCKET,
        s3_endpoint=ENDPOINT,
        redis_url="redis://fake:6379/0",
    )


@pytest.fixture
def fake_s3():
    return setup_test_s3_environment(BUCKET)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fake_logger():
    return FakeLogger()


@pytest.fixture
def access_control():
    return AccessControl(JwtTokenVerifier(TEST_JWT_SECRET))


@pytest.fixture
def store(fake_s3):
    return S3ObjectStore(fake_s3, bucket=BUCKET, endpoint=ENDPOINT)


@pytest.fixture
def dispatcher(fake_redis):
    return RedisWorkDispatcher(fake_redis)


@pytest.fixture
def transformer():
    return ImageTransformService()


@pytest.fixture
def container(settings, fake_s3, fake_redis, fake_logger):
    return ProcessingPipelineFactory.create_pipelines(
        settings, s3_client=fake_s3, redis_client=fake_redis, logger=fake_logger
    )


@pytest.fixture
def client(container):
    """Create a test client for the FastAPI app."""
    return TestClient(create_app(container))


@pytest.fixture
def agent_token():
    return make_token(sub="user-1", role="agent", agency_id="42")


@pytest.fixture
def auth_header(agent_token):
    return {"Authorization": f"Bearer {agent_token}"}
