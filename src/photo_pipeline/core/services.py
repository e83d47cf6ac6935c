"""Adapters for the external collaborators: transcoder, object store, job queue."""

import json
from typing import List, Optional

from .error_handling import client_error_code, with_error_handling
from .exceptions import DispatchError, StoreError, TransformError
from .image_utils import MAX_DIMENSION, WEBP_QUALITY, normalize_image
from .keys import validate_key
from .logging_config import get_logger
from .models import AccessTier, DispatchAck, NormalizedItem, WorkDescriptor
from .protocols import RedisClientProtocol, S3ClientProtocol

NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})

logger = get_logger("photo-pipeline.services")


class ImageTransformService:
    """Normalizes raw image bytes into WebP. No I/O."""

    def __init__(self, max_dimension: int = MAX_DIMENSION, quality: int = WEBP_QUALITY):
        self._max_dimension = max_dimension
        self._quality = quality

    @with_error_handling(TransformError, "Image processing failed")
    def transform(self, data: bytes) -> NormalizedItem:
        if not data:
            raise TransformError("Image processing failed: empty file")
        encoded, (width, height) = normalize_image(data, self._max_dimension, self._quality)
        return NormalizedItem(data=encoded, width=width, height=height)


class S3ObjectStore:
    """Object store over an S3-compatible bucket with public/private ACLs."""

    def __init__(
        self,
        s3_client: S3ClientProtocol,
        bucket: str,
        endpoint: Optional[str] = None,
        public_base_url: Optional[str] = None,
    ):
        self._s3_client = s3_client
        self._bucket = bucket
        self._endpoint = endpoint
        self._public_base_url = public_base_url

    @property
    def bucket(self) -> str:
        return self._bucket

    def public_url(self, key: str) -> str:
        if self._public_base_url:
            return f"{self._public_base_url.rstrip('/')}/{key}"
        return f"{(self._endpoint or '').rstrip('/')}/{self._bucket}/{key}"

    @with_error_handling(StoreError, "S3 upload failed")
    def put(
        self,
        data: bytes,
        key: str,
        tier: AccessTier,
        content_type: str = "image/webp",
    ) -> str:
        tier = AccessTier(tier)
        acl = "public-read" if tier is AccessTier.PUBLIC else "private"
        self._s3_client.put_object(
            Bucket=self._bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            ACL=acl,
        )
        logger.debug(f"Stored s3://{self._bucket}/{key} ({len(data)} bytes, {acl})")
        return self.public_url(key) if tier is AccessTier.PUBLIC else key

    def delete(self, key: str) -> bool:
        """
        Delete ``key`` and report whether it existed.

        S3 answers DeleteObject with success for missing keys, so existence is
        checked first. A missing key is not an error but is not a delete either.
        """
        validate_key(key)
        if not self._exists(key):
            logger.info(f"File not found for deletion: {key}")
            return False
        self._delete_object(key)
        return True

    @with_error_handling(StoreError, "S3 delete failed")
    def _exists(self, key: str) -> bool:
        try:
            self._s3_client.head_object(Bucket=self._bucket, Key=key)
        except Exception as e:
            if client_error_code(e) in NOT_FOUND_CODES:
                return False
            raise
        return True

    @with_error_handling(StoreError, "S3 delete failed")
    def _delete_object(self, key: str) -> None:
        self._s3_client.delete_object(Bucket=self._bucket, Key=key)

    @with_error_handling(StoreError, "Could not generate presigned URL")
    def sign(self, key: str, ttl: int = 3600) -> str:
        validate_key(key)
        return self._s3_client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self._bucket, "Key": key},
            ExpiresIn=ttl,
        )


class RedisWorkDispatcher:
    """
    Pushes JSON job records onto Redis lists read by the system of record.

    Each call is a single LPUSH so a batch lands atomically or not at all.
    There is no retry and no local outbox.
    """

    def __init__(
        self,
        redis_client: RedisClientProtocol,
        upload_queue: str = "photo_worker",
        delete_queue: str = "photo_delete_worker",
    ):
        self._redis = redis_client
        self._upload_queue = f"queue:{upload_queue}"
        self._delete_queue = f"queue:{delete_queue}"

    @with_error_handling(DispatchError, "Redis push failed")
    def dispatch(self, descriptors: List[WorkDescriptor]) -> DispatchAck:
        if not descriptors:
            return DispatchAck(queue=self._upload_queue, count=0)
        payloads = [json.dumps(d.model_dump(mode="json")) for d in descriptors]
        self._redis.lpush(self._upload_queue, *payloads)
        return DispatchAck(queue=self._upload_queue, count=len(payloads))

    @with_error_handling(DispatchError, "Redis push failed")
    def notify_deleted(self, entity_type: str, entity_id: str, keys: List[str]) -> DispatchAck:
        payload = {"entity_type": entity_type, "entity_id": entity_id, "file_urls": list(keys)}
        self._redis.lpush(self._delete_queue, json.dumps(payload))
        return DispatchAck(queue=self._delete_queue, count=1)
