"""Retry policy and per-photo error collection for outbound calls."""

import asyncio
import functools
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx
from botocore.exceptions import ClientError as BotocoreClientError

from .exceptions import FetchError
from .logging_config import get_logger

RETRYABLE_S3_ERROR_CODES = ('ProvisionedThroughputExceededException', 'ThrottlingException', 'SlowDown')
RETRYABLE_HTTP_STATUSES = frozenset({408, 425, 429, 500, 502, 503, 504})


def is_retryable_error(error: BaseException) -> bool:
    """
    Default retry predicate shared by every network call.

    Timeouts are never retried: the per-photo time box covers the whole
    fetch, not one attempt.
    """
    if isinstance(error, FetchError):
        return error.retryable
    if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
        return False
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_HTTP_STATUSES
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, BotocoreClientError):
        error_code = error.response.get('Error', {}).get('Code')
        return error_code in RETRYABLE_S3_ERROR_CODES
    return False


@dataclass(frozen=True)
class RetryPolicy:
    """Retry parameters applied uniformly to outbound network calls."""

    max_attempts: int = 2
    base_delay: float = 0.5
    backoff_factor: float = 2.0
    is_retryable: Callable[[BaseException], bool] = is_retryable_error

    def delay_for(self, attempt: int) -> float:
        """Delay before the attempt following ``attempt`` (1-based)."""
        return self.base_delay * (self.backoff_factor ** (attempt - 1))


NO_RETRY = RetryPolicy(max_attempts=1, base_delay=0.0)


def retry_async(policy: Optional[RetryPolicy] = None):
    """
    Decorator to retry coroutine functions according to a ``RetryPolicy``.

    The policy can be overridden per call through a ``retry_policy`` keyword
    argument, which is consumed by the wrapper.
    """
    default_policy = policy or RetryPolicy()

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, retry_policy: Optional[RetryPolicy] = None, **kwargs):
            active = retry_policy or default_policy
            logger = get_logger("watermark-export.fetcher")
            attempt = 0
            while True:
                attempt += 1
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if attempt >= active.max_attempts or not active.is_retryable(e):
                        if attempt > 1:
                            logger.error(
                                f"Operation '{func.__name__}' failed after {attempt} attempt(s). Error: {e}"
                            )
                        raise
                    delay = active.delay_for(attempt)
                    logger.info(
                        f"Operation '{func.__name__}' failed. Attempt {attempt}/{active.max_attempts}. "
                        f"Retrying in {delay:.2f}s. Error: {e}"
                    )
                    await asyncio.sleep(delay)
        return wrapper
    return decorator


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize per-photo errors.
    """
    def __init__(self, operation_name: str = "Batch Operation"):
        self.operation_name = operation_name
        self.errors: List[Dict[str, Any]] = []
        self.logger = get_logger("watermark-export.export")

    def __enter__(self):
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                item_identifier = error_detail.get('item', 'Unknown item')
                error_message = error_detail.get('error', 'Unknown error')
                self.logger.error(
                    f"  Error {i+1}/{len(self.errors)} for photo '{item_identifier}': {error_message}"
                )
        elif exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")

        # Never suppress: job-level errors must reach the caller
        return False

    def add_error(self, error_message: str, item_identifier: str = "Unknown item"):
        """
        Report an error for a specific photo within the 'with' block.

        Args:
            error_message (str): The error message or exception string.
            item_identifier (str): The photo id that failed.
        """
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(f"Error added for photo '{item_identifier}' in {self.operation_name}: {error_message}")

    @property
    def error_count(self) -> int:
        return len(self.errors)
