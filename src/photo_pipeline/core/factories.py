"""Factory classes for creating configured service instances."""

from dataclasses import dataclass
from typing import Any, Optional

import boto3
import redis
from botocore.client import Config as BotoConfig

from ..processors import get_item_runner
from .access import AccessControl, JwtTokenVerifier
from .config import Settings, get_settings
from .observability import StructuredLogger
from .pipelines import DeletionPipeline, PresignPipeline, UploadPipeline
from .protocols import (
    LoggerProtocol,
    RedisClientProtocol,
    S3ClientProtocol,
    TokenVerifierProtocol,
)
from .services import ImageTransformService, RedisWorkDispatcher, S3ObjectStore


class S3ClientFactory:
    """Factory for creating S3 client instances."""

    @staticmethod
    def create_s3_client(settings: Settings, **kwargs: Any) -> S3ClientProtocol:
        """Create a path-style S3 client for AWS or an S3-compatible endpoint."""
        session = boto3.session.Session()
        return session.client(  # type: ignore[return-value]
            service_name="s3",
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
            region_name=settings.s3_region,
            endpoint_url=settings.s3_endpoint,
            config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
            **kwargs,
        )


class RedisClientFactory:
    """Factory for creating Redis client instances."""

    @staticmethod
    def create_redis_client(settings: Settings) -> RedisClientProtocol:
        return redis.Redis.from_url(settings.redis_url)


@dataclass
class PipelineContainer:
    """Long-lived pipelines sharing one S3 client and one Redis connection pool."""

    settings: Settings
    upload: UploadPipeline
    deletion: DeletionPipeline
    presign: PresignPipeline


class ProcessingPipelineFactory:
    """Factory for creating the complete set of pipelines."""

    @staticmethod
    def create_pipelines(
        settings: Optional[Settings] = None,
        s3_client: Optional[S3ClientProtocol] = None,
        redis_client: Optional[RedisClientProtocol] = None,
        verifier: Optional[TokenVerifierProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> PipelineContainer:
        """
        Build every pipeline once, at process start.

        Collaborators not passed in are created from ``settings``; tests pass
        fakes instead.
        """
        settings = settings or get_settings()
        settings.require_storage()

        if s3_client is None:
            s3_client = S3ClientFactory.create_s3_client(settings)
        if redis_client is None:
            redis_client = RedisClientFactory.create_redis_client(settings)
        if verifier is None:
            verifier = JwtTokenVerifier(settings.require_jwt_secret(), settings.jwt_algorithm)

        access_control = AccessControl(verifier)
        transformer = ImageTransformService(settings.max_dimension, settings.webp_quality)
        store = S3ObjectStore(
            s3_client,
            bucket=settings.s3_bucket or "",
            endpoint=settings.s3_endpoint,
            public_base_url=settings.public_base_url,
        )
        dispatcher = RedisWorkDispatcher(
            redis_client,
            upload_queue=settings.upload_queue,
            delete_queue=settings.delete_queue,
        )

        return PipelineContainer(
            settings=settings,
            upload=UploadPipeline(
                access_control,
                transformer,
                store,
                dispatcher,
                logger=logger or StructuredLogger("photo-pipeline.upload"),
                item_runner=get_item_runner(settings.item_concurrency),
                max_items=settings.max_items,
                max_batch_bytes=settings.max_batch_bytes,
            ),
            deletion=DeletionPipeline(
                access_control,
                store,
                dispatcher,
                logger=logger or StructuredLogger("photo-pipeline.delete"),
            ),
            presign=PresignPipeline(
                access_control,
                store,
                ttl_seconds=settings.presign_ttl_seconds,
                logger=logger or StructuredLogger("photo-pipeline.presign"),
            ),
        )
