"""Structured logging with per-request correlation context."""

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from .logging_config import get_logger


@dataclass(frozen=True)
class LogContext:
    """
    Who and what a log line is about.

    One context is created per pipeline invocation; per-item contexts are
    derived from it so every line of a batch shares the correlation id.
    """

    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    operation: str = ""
    component: str = ""
    subject_id: Optional[str] = None
    tenant_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        return replace(self, operation=operation, metadata=dict(self.metadata))

    def with_metadata(self, **kwargs: Any) -> "LogContext":
        return replace(self, metadata={**self.metadata, **kwargs})

    def fields(self) -> Dict[str, Any]:
        """Caller identity followed by metadata, for rendering."""
        rendered: Dict[str, Any] = {}
        if self.subject_id:
            rendered["subject"] = self.subject_id
        if self.tenant_id:
            rendered["tenant"] = self.tenant_id
        rendered.update(self.metadata)
        return rendered


class StructuredLogger:
    """Renders a LogContext into each message of a stdlib logger."""

    def __init__(self, name: str = "photo-pipeline.pipeline", level: Optional[int] = None):
        self._logger = get_logger(name)
        if level is not None:
            self._logger.setLevel(level)

    @staticmethod
    def format_message(message: str, context: Optional[LogContext], **kwargs: Any) -> str:
        prefix = ""
        fields: Dict[str, Any] = {}
        if context is not None:
            prefix = f"[{context.correlation_id}] "
            if context.operation:
                prefix = f"[{context.operation}] {prefix}"
            fields.update(context.fields())
        fields.update(kwargs)

        rendered = prefix + message
        if fields:
            rendered += " (" + ", ".join(f"{k}={v}" for k, v in fields.items()) + ")"
        return rendered

    def log(
        self,
        level: int,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: Any = None,
        **kwargs: Any,
    ) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, self.format_message(message, context, **kwargs), exc_info=exc_info)

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self.log(logging.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self.log(logging.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self.log(logging.WARNING, message, context, **kwargs)

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self.log(logging.ERROR, message, context, **kwargs)

    def critical(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self.log(logging.CRITICAL, message, context, **kwargs)
