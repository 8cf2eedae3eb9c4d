"""Time-boxed, retried fetching of photo and watermark bytes."""

import asyncio
from contextlib import AsyncExitStack
from typing import Any, Optional, Tuple
from urllib.parse import urlparse

import aioboto3
import httpx
from botocore.exceptions import BotoCoreError

from .error_handling import (
    BotocoreClientError,
    RETRYABLE_S3_ERROR_CODES,
    RetryPolicy,
    retry_async,
)
from .exceptions import FetchError
from .logging_config import get_logger

DEFAULT_FETCH_TIMEOUT = 10.0


def parse_s3_url(url: str) -> Tuple[str, str]:
    """Split ``s3://bucket/key`` into ``(bucket, key)``."""
    parsed = urlparse(url)
    bucket = parsed.netloc
    key = parsed.path.lstrip("/")
    if not bucket or not key:
        raise FetchError(f"Invalid S3 URL: {url}")
    return bucket, key


class PhotoFetcher:
    """
    Fetches image bytes from ``http(s)://`` or ``s3://`` URLs.

    Use as an async context manager; one fetcher serves one export job so the
    HTTP connection pool and the S3 client are shared by all concurrent
    per-photo units of that job.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        retry_policy: Optional[RetryPolicy] = None,
        s3_endpoint_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        session: Optional[Any] = None,
    ):
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self._s3_endpoint_url = s3_endpoint_url
        self._transport = transport
        self._session = session
        self._stack: Optional[AsyncExitStack] = None
        self._http: Optional[httpx.AsyncClient] = None
        self._s3: Any = None
        self._s3_lock = asyncio.Lock()
        self._logger = get_logger("watermark-export.fetcher")

    async def __aenter__(self) -> "PhotoFetcher":
        self._stack = AsyncExitStack()
        self._http = await self._stack.enter_async_context(
            httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._stack is not None:
            await self._stack.aclose()
        self._stack = None
        self._http = None
        self._s3 = None

    async def fetch(self, url: str) -> bytes:
        """
        Fetch ``url`` within the per-fetch time box.

        Raises:
            FetchError: On timeout, non-2xx status, transport or storage errors
        """
        if self._http is None:
            raise RuntimeError("PhotoFetcher must be used as an async context manager")
        try:
            return await asyncio.wait_for(
                self._fetch_with_retry(url, retry_policy=self.retry_policy),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise FetchError(f"Timed out after {self.timeout:g}s fetching {url}") from exc

    @retry_async()
    async def _fetch_with_retry(self, url: str) -> bytes:
        scheme = urlparse(url).scheme.lower()
        if scheme in ("http", "https"):
            return await self._fetch_http(url)
        if scheme == "s3":
            return await self._fetch_s3(url)
        raise FetchError(f"Unsupported URL scheme '{scheme}' for {url}")

    async def _fetch_http(self, url: str) -> bytes:
        assert self._http is not None
        try:
            response = await self._http.get(url)
        except httpx.TimeoutException as exc:
            raise FetchError(f"Timed out fetching {url}") from exc
        except httpx.TransportError as exc:
            raise FetchError(f"Network error fetching {url}: {exc}", retryable=True) from exc

        if not response.is_success:
            status = response.status_code
            self._logger.debug(f"Fetch of {url} returned HTTP {status}")
            raise FetchError(f"HTTP {status}", retryable=status >= 500 or status == 429)
        return response.content

    async def _s3_client(self) -> Any:
        async with self._s3_lock:
            if self._s3 is None:
                assert self._stack is not None
                session = self._session or aioboto3.Session()
                self._s3 = await self._stack.enter_async_context(
                    session.client("s3", endpoint_url=self._s3_endpoint_url)
                )
        return self._s3

    async def _fetch_s3(self, url: str) -> bytes:
        bucket, key = parse_s3_url(url)
        client = await self._s3_client()
        try:
            response = await client.get_object(Bucket=bucket, Key=key)
            async with response["Body"] as stream:
                return await stream.read()
        except Exception as exc:
            if isinstance(exc, BotocoreClientError):
                code = exc.response.get("Error", {}).get("Code", "Unknown")
                raise FetchError(
                    f"S3 {code} for s3://{bucket}/{key}",
                    retryable=code in RETRYABLE_S3_ERROR_CODES,
                ) from exc
            if isinstance(exc, BotoCoreError):
                raise FetchError(
                    f"S3 request failed for s3://{bucket}/{key}: {exc}",
                    retryable=True,
                ) from exc
            raise
