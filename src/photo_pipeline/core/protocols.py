"""Protocol definitions for dependency injection and testability."""

from typing import Any, Dict, List, Protocol

from .models import AccessTier, DispatchAck, NormalizedItem, WorkDescriptor


class S3ClientProtocol(Protocol):
    """Subset of the boto3 S3 client used by the object store."""

    def put_object(self, **kwargs: Any) -> Dict[str, Any]:
        ...

    def head_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        ...

    def delete_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        ...

    def generate_presigned_url(
        self, ClientMethod: str, Params: Dict[str, Any], ExpiresIn: int
    ) -> str:
        ...


class RedisClientProtocol(Protocol):
    """Subset of the redis-py client used by the dispatcher."""

    def lpush(self, name: str, *values: Any) -> int:
        ...


class TokenVerifierProtocol(Protocol):
    """Verifies a bearer token and returns its claims."""

    def verify(self, token: str) -> Dict[str, Any]:
        """Return the claims, raising InvalidCredential when verification fails."""
        ...


class ObjectTransformProtocol(Protocol):
    def transform(self, data: bytes) -> NormalizedItem:
        """Normalize raw image bytes, raising TransformError on any failure."""
        ...


class ObjectStoreProtocol(Protocol):
    def put(self, data: bytes, key: str, tier: AccessTier, content_type: str) -> str:
        """Store bytes, returning a public URL (public tier) or the bare key (private)."""
        ...

    def delete(self, key: str) -> bool:
        """Return True when deleted, False when the key did not exist."""
        ...

    def sign(self, key: str, ttl: int) -> str:
        ...


class WorkDispatcherProtocol(Protocol):
    def dispatch(self, descriptors: List[WorkDescriptor]) -> DispatchAck:
        """Deliver the whole batch in one attempt, raising DispatchError on failure."""
        ...

    def notify_deleted(self, entity_type: str, entity_id: str, keys: List[str]) -> DispatchAck:
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...
