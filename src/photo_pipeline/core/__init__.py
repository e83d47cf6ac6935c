"""Core models, adapters and pipelines for the photo pipeline."""

from .logging_config import get_logger, setup_logger
from .exceptions import (
    AuthorizationError,
    ConfigurationError,
    DispatchError,
    InsufficientRole,
    InvalidCredential,
    ItemProcessingError,
    LimitExceeded,
    MalformedRequest,
    MissingCredential,
    OwnershipViolation,
    PhotoPipelineError,
    StoreError,
    TransformError,
    ValidationError,
)
from .models import (
    AccessTier,
    AuthContext,
    BatchOutcome,
    BatchRequest,
    DeletionOutcome,
    DispatchAck,
    ItemOutcome,
    MainSelector,
    NormalizedItem,
    RawItem,
    SignedLink,
    WorkDescriptor,
)

__all__ = [
    "setup_logger",
    "get_logger",
    "PhotoPipelineError",
    "ConfigurationError",
    "AuthorizationError",
    "MissingCredential",
    "InvalidCredential",
    "InsufficientRole",
    "ValidationError",
    "MalformedRequest",
    "LimitExceeded",
    "ItemProcessingError",
    "TransformError",
    "StoreError",
    "OwnershipViolation",
    "DispatchError",
    "AccessTier",
    "AuthContext",
    "BatchOutcome",
    "BatchRequest",
    "DeletionOutcome",
    "DispatchAck",
    "ItemOutcome",
    "MainSelector",
    "NormalizedItem",
    "RawItem",
    "SignedLink",
    "WorkDescriptor",
]
