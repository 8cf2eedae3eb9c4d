"""Factory classes for creating configured service instances."""

import functools
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Optional

from .config import Settings
from .exceptions import ConfigurationError
from .fetching import PhotoFetcher
from .logging_config import get_logger
from .observability import StructuredLogger
from .protocols import CollectionStore, IdentityProvider, LoggerProtocol
from .services import (
    CollectionViewService,
    ExportService,
    FetcherFactory,
    PreviewService,
    SizePlanner,
    WatermarkConfigService,
    fetch_retry_policy,
)
from .storage import InMemoryCollectionStore


class StaticTokenIdentityProvider:
    """Maps opaque bearer tokens to user ids from a fixed table."""

    def __init__(self, tokens: Dict[str, str]):
        self._tokens = dict(tokens)

    def resolve(self, token: Optional[str]) -> Optional[str]:
        if not token:
            return None
        return self._tokens.get(token)


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str = "watermark-export.export") -> LoggerProtocol:
        """Create a structured logger bound to one of the service loggers."""
        return StructuredLogger(name)


class FetcherFactoryBuilder:
    """Builds per-job ``PhotoFetcher`` constructors from settings."""

    @staticmethod
    def from_settings(settings: Settings) -> FetcherFactory:
        return functools.partial(
            PhotoFetcher,
            timeout=settings.fetch_timeout,
            retry_policy=fetch_retry_policy(settings),
            s3_endpoint_url=settings.s3_endpoint_url,
        )


@dataclass
class ServiceContext:
    """
    Everything a request handler needs, passed explicitly.

    Holds the runtime knobs, collaborators and the shared thread pool used
    for CPU-bound compositing. Services are built once per context.
    """

    settings: Settings
    store: CollectionStore
    fetcher_factory: FetcherFactory
    identity: IdentityProvider
    logger: LoggerProtocol
    executor: Optional[Executor] = None
    exports: ExportService = field(init=False)
    previews: PreviewService = field(init=False)
    sizes: SizePlanner = field(init=False)
    watermark_configs: WatermarkConfigService = field(init=False)
    collection_views: CollectionViewService = field(init=False)

    def __post_init__(self) -> None:
        self.exports = ExportService(
            self.store, self.fetcher_factory, self.settings, self.logger, self.executor
        )
        self.previews = PreviewService(
            self.store, self.fetcher_factory, self.settings, self.logger, self.executor
        )
        self.sizes = SizePlanner(self.store, self.settings)
        self.watermark_configs = WatermarkConfigService(self.store, self.logger)
        self.collection_views = CollectionViewService(self.store)

    def close(self) -> None:
        """Release the compositing thread pool."""
        if self.executor is not None:
            self.executor.shutdown(wait=True)


class ServiceContextFactory:
    """Factory for creating the complete service context."""

    @staticmethod
    def create(
        settings: Optional[Settings] = None,
        store: Optional[CollectionStore] = None,
        fetcher_factory: Optional[FetcherFactory] = None,
        identity: Optional[IdentityProvider] = None,
        logger: Optional[LoggerProtocol] = None,
        executor: Optional[Executor] = None,
    ) -> ServiceContext:
        """Create a fully configured context, filling in defaults from ``settings``."""
        settings = settings or Settings()

        if store is None:
            if settings.data_file:
                get_logger("watermark-export").info(
                    f"Loading collections from {settings.data_file}"
                )
                try:
                    store = InMemoryCollectionStore.from_json_file(settings.data_file)
                except (OSError, ValueError) as e:
                    raise ConfigurationError(
                        f"Cannot load data file {settings.data_file}: {e}"
                    ) from e
            else:
                store = InMemoryCollectionStore()

        if fetcher_factory is None:
            fetcher_factory = FetcherFactoryBuilder.from_settings(settings)

        if identity is None:
            identity = StaticTokenIdentityProvider(settings.token_map)

        if logger is None:
            logger = LoggerFactory.create_logger()

        if executor is None:
            executor = ThreadPoolExecutor(
                max_workers=settings.executor_workers,
                thread_name_prefix="compositor",
            )

        return ServiceContext(
            settings=settings,
            store=store,
            fetcher_factory=fetcher_factory,
            identity=identity,
            logger=logger,
            executor=executor,
        )
