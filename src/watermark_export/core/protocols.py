"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Protocol

from .models import Collection, Watermark, WatermarkConfig


class PhotoFetcherProtocol(Protocol):
    """Protocol for fetching image bytes by URL."""

    async def __aenter__(self) -> "PhotoFetcherProtocol":
        ...

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        ...

    async def fetch(self, url: str) -> bytes:
        """Fetch the bytes behind ``url`` or raise ``FetchError``."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...


class IdentityProvider(Protocol):
    """Resolves a bearer token to a user id."""

    def resolve(self, token: Optional[str]) -> Optional[str]:
        ...


class CollectionStore(ABC):
    """Read/write access to collections, watermark assets and configs."""

    @abstractmethod
    async def get_collection(self, collection_id: str) -> Optional[Collection]:
        ...

    @abstractmethod
    async def get_watermark(self, watermark_id: str) -> Optional[Watermark]:
        ...

    @abstractmethod
    async def get_watermark_config(
        self, collection_id: str, user_id: str
    ) -> Optional[WatermarkConfig]:
        ...

    @abstractmethod
    async def save_watermark_config(self, config: WatermarkConfig) -> WatermarkConfig:
        ...

    @abstractmethod
    async def delete_watermark_config(self, collection_id: str, user_id: str) -> bool:
        ...

    @abstractmethod
    async def list_watermark_configs(self, user_id: str) -> List[WatermarkConfig]:
        ...
