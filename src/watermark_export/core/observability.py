"""Observability utilities for structured logging and per-photo metrics."""

import logging
import threading
import uuid
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum

from .logging_config import get_logger


class LogLevel(Enum):
    """Log levels for structured logging."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass
class LogContext:
    """Context information for structured logging."""

    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    operation: str = ""
    component: str = ""
    user_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        """Create new context with operation set."""
        return LogContext(
            correlation_id=self.correlation_id,
            operation=operation,
            component=self.component,
            user_id=self.user_id,
            metadata=self.metadata.copy(),
        )

    def with_metadata(self, **kwargs) -> "LogContext":
        """Create new context with additional metadata."""
        new_metadata = self.metadata.copy()
        new_metadata.update(kwargs)
        return LogContext(
            correlation_id=self.correlation_id,
            operation=self.operation,
            component=self.component,
            user_id=self.user_id,
            metadata=new_metadata,
        )


class StructuredLogger:
    """Structured logger with context support, backed by the service loggers."""

    def __init__(self, name: str = "watermark-export.export"):
        self._logger: logging.Logger = get_logger(name)

    def _log(
        self,
        level: LogLevel,
        message: str,
        context: Optional[LogContext] = None,
        **kwargs,
    ):
        if context:
            formatted_message = f"[{context.correlation_id}] {message}"
            if context.operation:
                formatted_message = f"[{context.operation}] {formatted_message}"

            fields = {**context.metadata, **kwargs}
            if context.user_id:
                fields["user_id"] = context.user_id
            if fields:
                metadata_str = ", ".join(f"{k}={v}" for k, v in fields.items())
                formatted_message = f"{formatted_message} ({metadata_str})"
        elif kwargs:
            metadata_str = ", ".join(f"{k}={v}" for k, v in kwargs.items())
            formatted_message = f"{message} ({metadata_str})"
        else:
            formatted_message = message

        getattr(self._logger, level.value.lower())(formatted_message)

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(LogLevel.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(LogLevel.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(LogLevel.WARNING, message, context, **kwargs)

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(LogLevel.ERROR, message, context, **kwargs)


@dataclass
class PerformanceMetrics:
    """Performance metrics for operations."""

    operation: str
    start_time: float
    end_time: float
    success: bool
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        """Operation duration in seconds."""
        return self.end_time - self.start_time


class MetricsCollector:
    """Collector for performance metrics; safe to record from worker threads."""

    def __init__(self):
        self._metrics: List[PerformanceMetrics] = []
        self._lock = threading.Lock()

    def record_metric(self, metric: PerformanceMetrics):
        with self._lock:
            self._metrics.append(metric)

    def get_metrics(self, operation: Optional[str] = None) -> List[PerformanceMetrics]:
        """Get recorded metrics, optionally filtered by operation."""
        with self._lock:
            if operation:
                return [m for m in self._metrics if m.operation == operation]
            return self._metrics.copy()

    def get_summary(self, operation: Optional[str] = None) -> Dict[str, Any]:
        """Get summary statistics for metrics."""
        metrics = self.get_metrics(operation)

        if not metrics:
            return {}

        durations = [m.duration for m in metrics]
        successful = [m for m in metrics if m.success]

        return {
            "total_operations": len(metrics),
            "successful_operations": len(successful),
            "failed_operations": len(metrics) - len(successful),
            "success_rate": len(successful) / len(metrics),
            "avg_duration": sum(durations) / len(durations),
            "min_duration": min(durations),
            "max_duration": max(durations),
            "total_duration": sum(durations),
        }
