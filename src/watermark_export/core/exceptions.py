"""Custom exceptions and error handling utilities for the watermark export service."""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, TypeVar

from .logging_config import get_logger


class WatermarkExportError(Exception):
    """Base exception for all watermark export errors.

    ``status_code`` is the HTTP status the API surfaces for the error and
    ``message`` is the caller-safe text placed in the ``{"error": ...}`` body.
    """

    status_code = 500

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(message)
        self.message = message


class AuthenticationError(WatermarkExportError):
    """Raised when no verified caller identity is present."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class NotFoundError(WatermarkExportError):
    """Raised for a missing collection, photo, watermark config or watermark source."""

    status_code = 404


class BadRequestError(WatermarkExportError):
    """Raised for invalid request parameters such as an out-of-range page."""

    status_code = 400


class ConfigurationError(WatermarkExportError):
    """Error raised for invalid configuration options."""


class FetchError(WatermarkExportError):
    """Error raised when a remote image cannot be fetched.

    Recoverable at the per-photo level; ``retryable`` tells the retry policy
    whether another attempt may succeed.
    """

    def __init__(self, message: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class ImageProcessingError(WatermarkExportError):
    """Error raised when decoding, compositing or encoding a single image fails."""


class WatermarkSourceError(WatermarkExportError):
    """Raised when the watermark image itself cannot be fetched or decoded."""


class JobFailedError(WatermarkExportError):
    """Raised when no photo in the requested slice could be processed."""


F = TypeVar("F", bound=Callable[..., Any])


def with_error_handling(func: F) -> F:
    """Wrap a function with standardized error handling."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:  # type: ignore[override]
        logger = get_logger("watermark-export.processor")
        try:
            return func(*args, **kwargs)
        except WatermarkExportError as exc:
            logger.warning(f"{func.__name__} failed: {exc}")
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error(f"Unhandled error in {func.__name__}: {exc}", exc_info=True)
            raise ImageProcessingError(str(exc)) from exc

    return wrapper  # type: ignore[return-value]

