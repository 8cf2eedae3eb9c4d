"""Service implementations behind the export, preview and configuration endpoints."""

import asyncio
import functools
import time
import uuid
from concurrent.futures import Executor
from typing import Callable, List, Optional, Tuple

from ..processors.asyncio_processor import process_photos
from ..processors.common import PhotoJobResources, PhotoOutput, count_results, log_final_statistics
from .archive import (
    ArchiveAssembler,
    archive_filename,
    render_chunk_metadata,
    render_text_report,
)
from .compositor import PreparedWatermark, composite_watermark, prepare_watermark
from .config import Settings
from .error_handling import BatchOperationContextManager, RetryPolicy
from .exceptions import (
    BadRequestError,
    FetchError,
    ImageProcessingError,
    JobFailedError,
    NotFoundError,
    WatermarkSourceError,
)
from .models import (
    Collection,
    CollectionSummary,
    ExportArchive,
    ExportReport,
    PageSlice,
    Photo,
    SizePlan,
    WatermarkConfig,
    WatermarkConfigRequest,
)
from .observability import LogContext, MetricsCollector
from .paging import PagingScheme, batch_page, batch_scheme, chunk_page, chunk_scheme, plan_size
from .protocols import CollectionStore, LoggerProtocol, PhotoFetcherProtocol

FetcherFactory = Callable[[], PhotoFetcherProtocol]


def summarize_collection(collection: Collection) -> CollectionSummary:
    """Listing projection: counts and a thumbnail instead of the full photo list."""
    ordered = collection.ordered_photos()
    return CollectionSummary(
        id=collection.id,
        name=collection.name,
        description=collection.description,
        photo_count=len(ordered),
        thumbnail_url=ordered[0].url if ordered else None,
        created_at=collection.created_at,
    )


async def require_collection(store: CollectionStore, collection_id: str) -> Collection:
    collection = await store.get_collection(collection_id)
    if collection is None:
        raise NotFoundError("Collection not found")
    return collection


async def require_watermark_config(
    store: CollectionStore, collection_id: str, user_id: str
) -> WatermarkConfig:
    config = await store.get_watermark_config(collection_id, user_id)
    if config is None:
        raise NotFoundError("Watermark configuration not found")
    return config


class WatermarkPreparer:
    """Fetches and pre-processes the watermark once per job."""

    def __init__(self, settings: Settings, executor: Optional[Executor] = None):
        self._settings = settings
        self._executor = executor

    async def prepare(
        self, fetcher: PhotoFetcherProtocol, config: WatermarkConfig
    ) -> PreparedWatermark:
        """
        Raises:
            WatermarkSourceError: If the watermark cannot be fetched or decoded.
                Every photo needs it, so this is fatal for the job.
        """
        try:
            data = await fetcher.fetch(config.watermark_url)
        except FetchError as e:
            raise WatermarkSourceError("Failed to fetch watermark image") from e

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                self._executor,
                functools.partial(
                    prepare_watermark,
                    data,
                    config.dimensions,
                    config.rotation,
                    max_pixels=self._settings.max_input_pixels,
                ),
            )
        except ImageProcessingError as e:
            raise WatermarkSourceError("Failed to process watermark image") from e


class ExportService:
    """
    Batch and chunk exports of a collection.

    Both routes share one pipeline: load collection and config, slice the
    ordered photos, prepare the watermark, process the slice in concurrent
    groups, then assemble the archive. A request fails as a whole only when
    nothing in its slice could be processed.
    """

    def __init__(
        self,
        store: CollectionStore,
        fetcher_factory: FetcherFactory,
        settings: Settings,
        logger: LoggerProtocol,
        executor: Optional[Executor] = None,
    ):
        self._store = store
        self._fetcher_factory = fetcher_factory
        self._settings = settings
        self._logger = logger
        self._executor = executor
        self._preparer = WatermarkPreparer(settings, executor)

    @property
    def batch(self) -> PagingScheme:
        return batch_scheme(self._settings.batch_size, self._settings.batch_concurrency)

    @property
    def chunk(self) -> PagingScheme:
        return chunk_scheme(self._settings.chunk_size, self._settings.chunk_concurrency)

    async def _load(self, collection_id: str, user_id: str) -> Tuple[Collection, WatermarkConfig, List[Photo]]:
        collection = await require_collection(self._store, collection_id)
        if not collection.photos:
            raise BadRequestError("Collection has no photos")
        config = await require_watermark_config(self._store, collection_id, user_id)
        photos = collection.ordered_photos()[: self._settings.max_export_photos]
        return collection, config, photos

    async def export_batch(
        self,
        collection_id: str,
        user_id: str,
        batch_number: int,
        size: Optional[int] = None,
    ) -> ExportArchive:
        """Export 1-based batch ``batch_number`` as a ZIP with ``processing_report.txt``."""
        collection, config, photos = await self._load(collection_id, user_id)
        scheme = self.batch
        page = batch_page(len(photos), batch_number, size=size, max_size=scheme.page_size)

        def _report(report: ExportReport) -> str:
            return render_text_report(report)

        return await self._export_page(
            collection, config, photos, scheme, page, _report, user_id, total_label=None
        )

    async def export_chunk(
        self,
        collection_id: str,
        user_id: str,
        chunk_index: int,
        total_chunks_hint: Optional[int] = None,
    ) -> ExportArchive:
        """Export 0-based chunk ``chunk_index`` as a ZIP with ``chunk_metadata.json``.

        ``total_chunks_hint`` is echoed into the metadata and the filename only.
        """
        collection, config, photos = await self._load(collection_id, user_id)
        scheme = self.chunk
        page = chunk_page(len(photos), chunk_index, chunk_size=scheme.page_size)

        def _report(report: ExportReport) -> str:
            return render_chunk_metadata(report, page, total_chunks_hint)

        return await self._export_page(
            collection, config, photos, scheme, page, _report, user_id, total_label=total_chunks_hint
        )

    async def _export_page(
        self,
        collection: Collection,
        config: WatermarkConfig,
        photos: List[Photo],
        scheme: PagingScheme,
        page: PageSlice,
        render_report: Callable[[ExportReport], str],
        user_id: str,
        total_label: Optional[int],
    ) -> ExportArchive:
        start_time = time.time()
        context = LogContext(
            operation=f"export_{scheme.name}",
            component="export_service",
            user_id=user_id,
        ).with_metadata(collection_id=collection.id, page=f"{page.page_number}/{page.total_pages}")
        self._logger.info(
            f"Processing {scheme.name} {page.page_number}/{page.total_pages} "
            f"with {page.count} photo(s) for collection {collection.name}",
            context,
        )

        slice_photos = photos[page.start : page.end]
        metrics = MetricsCollector()

        async with self._fetcher_factory() as fetcher:
            watermark = await self._preparer.prepare(fetcher, config)
            resources = PhotoJobResources(
                watermark=watermark,
                position=config.position,
                fetcher=fetcher,
                logger=self._logger,
                quality=self._settings.export_jpeg_quality,
                max_pixels=self._settings.max_input_pixels,
                executor=self._executor,
                metrics=metrics,
                log_context=context,
            )
            with BatchOperationContextManager(
                operation_name=f"{scheme.name.capitalize()} {page.page_number} of {collection.id}"
            ) as batch_manager:
                outputs = await process_photos(slice_photos, resources, scheme.concurrency)
                for output in outputs:
                    if not output.result.success:
                        batch_manager.add_error(
                            output.result.error or "Unknown error",
                            item_identifier=output.result.photo_id,
                        )

        results = [output.result for output in outputs]
        succeeded, failed = count_results(results)
        log_final_statistics(
            f"{scheme.name.capitalize()} {page.page_number}/{page.total_pages}",
            time.time() - start_time,
            len(results),
            succeeded,
            failed,
        )
        summary = metrics.get_summary("process_photo")
        if summary:
            self._logger.debug(
                "Per-photo timings",
                context,
                avg_ms=round(summary["avg_duration"] * 1000, 1),
                max_ms=round(summary["max_duration"] * 1000, 1),
            )

        if succeeded == 0:
            self._logger.error("No photo in the slice could be processed", context)
            raise JobFailedError(
                f"Failed to process any photos in this {scheme.name}. Please try again later."
            )

        loop = asyncio.get_running_loop()
        content, report = await loop.run_in_executor(
            self._executor,
            functools.partial(
                self._assemble, collection, page, scheme, outputs, render_report
            ),
        )
        filename = archive_filename(collection.name, page, total_label)
        self._logger.info(
            f"Archive {filename} ready, {len(content) // 1024} KB",
            context,
        )
        return ExportArchive(filename=filename, content=content, report=report, results=results)

    def _assemble(
        self,
        collection: Collection,
        page: PageSlice,
        scheme: PagingScheme,
        outputs: List[PhotoOutput],
        render_report: Callable[[ExportReport], str],
    ) -> Tuple[bytes, ExportReport]:
        assembler = ArchiveAssembler(compress_level=self._settings.zip_compress_level)
        for output in outputs:
            if output.result.success and output.data is not None:
                output.result.output_name = assembler.add_member(
                    output.result.output_name or f"{output.result.sequence:04d}_photo.jpg",
                    output.data,
                )
        report = ExportReport.from_results(collection, page, [o.result for o in outputs])
        assembler.add_text(scheme.report_name, render_report(report))
        return assembler.build(), report


class PreviewService:
    """Single-photo watermarked preview."""

    def __init__(
        self,
        store: CollectionStore,
        fetcher_factory: FetcherFactory,
        settings: Settings,
        logger: LoggerProtocol,
        executor: Optional[Executor] = None,
    ):
        self._store = store
        self._fetcher_factory = fetcher_factory
        self._settings = settings
        self._logger = logger
        self._executor = executor
        self._preparer = WatermarkPreparer(settings, executor)

    async def render(self, collection_id: str, photo_id: str, user_id: str) -> Tuple[str, bytes]:
        """Return ``(filename, jpeg_bytes)`` for one photo at preview quality."""
        collection = await require_collection(self._store, collection_id)
        photo = collection.find_photo(photo_id)
        if photo is None:
            raise NotFoundError("Photo not found in collection")
        config = await require_watermark_config(self._store, collection_id, user_id)

        context = LogContext(
            operation="preview", component="preview_service", user_id=user_id
        ).with_metadata(collection_id=collection_id, photo_id=photo_id)
        self._logger.debug("Rendering watermarked preview", context)

        async with self._fetcher_factory() as fetcher:
            try:
                source = await fetcher.fetch(photo.url)
            except FetchError as e:
                self._logger.error(f"Failed to fetch original photo: {e}", context)
                raise JobFailedError("Failed to fetch original photo") from e
            watermark = await self._preparer.prepare(fetcher, config)

        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(
                self._executor,
                functools.partial(
                    composite_watermark,
                    source,
                    watermark,
                    config.position,
                    quality=self._settings.preview_jpeg_quality,
                    max_pixels=self._settings.max_input_pixels,
                ),
            )
        except ImageProcessingError as e:
            self._logger.error(f"Failed to composite preview: {e}", context)
            raise JobFailedError("Failed to generate watermarked image") from e
        return f"watermarked_{photo_id}.jpg", data


class SizePlanner:
    """Reports how many chunk requests a collection needs."""

    def __init__(self, store: CollectionStore, settings: Settings):
        self._store = store
        self._settings = settings

    async def plan(self, collection_id: str, user_id: str) -> SizePlan:
        collection = await require_collection(self._store, collection_id)
        config = await require_watermark_config(self._store, collection_id, user_id)
        return plan_size(
            len(collection.photos),
            has_watermark_config=config is not None,
            chunk_size=self._settings.chunk_size,
            max_photos=self._settings.max_export_photos,
        )


class WatermarkConfigService:
    """Create, read and delete per-user watermark placements."""

    def __init__(self, store: CollectionStore, logger: LoggerProtocol):
        self._store = store
        self._logger = logger

    async def save(
        self, collection_id: str, user_id: str, request: WatermarkConfigRequest
    ) -> WatermarkConfig:
        await require_collection(self._store, collection_id)
        watermark = await self._store.get_watermark(request.watermark_id)
        if watermark is None or not watermark.is_watermark:
            raise NotFoundError("Watermark not found")

        existing = await self._store.get_watermark_config(collection_id, user_id)
        config = WatermarkConfig(
            id=existing.id if existing else uuid.uuid4().hex,
            collection_id=collection_id,
            user_id=user_id,
            watermark_id=watermark.id,
            watermark_url=watermark.url,
            position=request.position,
            dimensions=request.dimensions,
            rotation=request.rotation or 0.0,
        )
        saved = await self._store.save_watermark_config(config)
        self._logger.info(
            f"{'Updated' if existing else 'Created'} watermark config {saved.id} "
            f"for collection {collection_id}"
        )
        return saved

    async def get(self, collection_id: str, user_id: str) -> WatermarkConfig:
        await require_collection(self._store, collection_id)
        return await require_watermark_config(self._store, collection_id, user_id)

    async def delete(self, collection_id: str, user_id: str) -> None:
        collection = await require_collection(self._store, collection_id)
        if collection.owner_id and collection.owner_id != user_id:
            raise NotFoundError("Collection not found")
        removed = await self._store.delete_watermark_config(collection_id, user_id)
        self._logger.info(
            f"Watermark config for collection {collection_id} "
            f"{'removed' if removed else 'was already absent'}"
        )


class CollectionViewService:
    """Read-side projections of collections."""

    def __init__(self, store: CollectionStore):
        self._store = store

    async def watermarked_collections(self, user_id: str) -> List[CollectionSummary]:
        """Collections the user has configured a watermark for."""
        summaries = []
        for config in await self._store.list_watermark_configs(user_id):
            collection = await self._store.get_collection(config.collection_id)
            if collection is not None:
                summaries.append(summarize_collection(collection))
        return summaries


def fetch_retry_policy(settings: Settings) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.fetch_max_attempts,
        base_delay=settings.fetch_retry_delay,
    )
