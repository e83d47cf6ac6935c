# src/photo_pipeline/core/error_handling.py

import functools
import logging
from typing import Any, Callable, Dict, List, Type, TypeVar

from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError
from redis.exceptions import RedisError

from .exceptions import (
    DispatchError,
    PhotoPipelineError,
    StoreError,
    TransformError,
)

F = TypeVar("F", bound=Callable[..., Any])

# Third-party failures and the pipeline error each one becomes.
_TRANSLATIONS = (
    ((ClientError, BotoCoreError), StoreError),
    ((UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError), TransformError),
    ((RedisError,), DispatchError),
)


def client_error_code(exc: BaseException) -> str:
    """Return the S3 error code carried by a botocore ClientError, or ''."""
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code", ""))
    return ""


def with_error_handling(
    error_cls: Type[PhotoPipelineError], message: str
) -> Callable[[F], F]:
    """
    Wrap an adapter call so that every failure surfaces as ``error_cls``.

    Errors already in the pipeline taxonomy pass through untouched. Known
    third-party errors and anything else are logged and re-raised as
    ``error_cls("<message>: <cause>")`` with the original chained.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = logging.getLogger(func.__module__ + "." + func.__name__)
            try:
                return func(*args, **kwargs)
            except PhotoPipelineError:
                raise
            except Exception as e:
                target = error_cls
                for source_types, mapped in _TRANSLATIONS:
                    if isinstance(e, source_types) and issubclass(mapped, error_cls):
                        target = mapped
                        break
                logger.error(f"Error in '{func.__name__}': {e}", exc_info=True)
                raise target(f"{message}: {e}") from e

        return wrapper  # type: ignore[return-value]

    return decorator


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.
    """

    def __init__(self, operation_name: str = "Batch Operation"):
        self.operation_name = operation_name
        self.errors: List[Dict[str, str]] = []
        self.logger = logging.getLogger(
            self.__class__.__module__ + "." + self.__class__.__name__
        )

    def __enter__(self) -> "BatchOperationContextManager":
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                self.logger.error(
                    f"  Error {i + 1}/{len(self.errors)} for item "
                    f"'{error_detail['item']}': {error_detail['error']}"
                )
        elif exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb),
            )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")

        # Never suppress: exceptions that escaped the block still propagate.
        return False

    def add_error(self, error_message: str, item_identifier: str = "Unknown item") -> None:
        """Record an error for a specific item (filename or key)."""
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(
            f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}"
        )
