"""Testing utilities and fakes for the photo pipeline."""

from .fakes import (
    TEST_JWT_SECRET,
    FakeLogger,
    FakeRedis,
    FakeS3Client,
    S3Bucket,
    S3Object,
    create_test_image,
    make_token,
    setup_test_s3_environment,
)

__all__ = [
    "TEST_JWT_SECRET",
    "FakeS3Client",
    "FakeRedis",
    "FakeLogger",
    "S3Object",
    "S3Bucket",
    "create_test_image",
    "make_token",
    "setup_test_s3_environment",
]
