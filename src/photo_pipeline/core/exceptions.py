"""Exception hierarchy for the photo pipeline."""

from __future__ import annotations


class PhotoPipelineError(Exception):
    """Base exception for all photo pipeline errors."""


class ConfigurationError(PhotoPipelineError):
    """Error raised for invalid or missing configuration."""


# Request-level errors: always short-circuit before any per-item work.


class AuthorizationError(PhotoPipelineError):
    """Base class for credential and role failures."""

    status_code = 401


class MissingCredential(AuthorizationError):
    """No bearer credential was presented."""


class InvalidCredential(AuthorizationError):
    """The credential is malformed, badly signed, expired or not an access token."""


class InsufficientRole(AuthorizationError):
    """The credential is valid but its role is not allowed on this route."""

    status_code = 403


class ValidationError(PhotoPipelineError):
    """Base class for malformed or over-limit requests."""

    status_code = 400


class MalformedRequest(ValidationError):
    """A required field is missing or has the wrong shape."""


class LimitExceeded(ValidationError):
    """The batch has too many items or too many bytes."""


# Item-level errors: recorded per item, never abort siblings.


class ItemProcessingError(PhotoPipelineError):
    """Error raised when processing a single item fails."""

    status_code = 500


class TransformError(ItemProcessingError):
    """Image normalization failed (corrupt input, unsupported codec)."""


class StoreError(ItemProcessingError):
    """Object store operation failed."""


class OwnershipViolation(PhotoPipelineError):
    """A key lies outside the caller's tenant namespace."""

    status_code = 403


class DispatchError(PhotoPipelineError):
    """Downstream queue rejected the batch."""

    status_code = 502
