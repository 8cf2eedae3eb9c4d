"""Per-photo fetch/composite unit and progress logging shared by the export paths."""

import asyncio
import functools
import time
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import List, Optional

from ..core import (
    Photo,
    PhotoResult,
    Position,
    get_logger,
)
from ..core.compositor import PreparedWatermark, composite_watermark
from ..core.exceptions import FetchError, ImageProcessingError, WatermarkExportError
from ..core.naming import build_output_name
from ..core.observability import LogContext, MetricsCollector, PerformanceMetrics
from ..core.protocols import LoggerProtocol, PhotoFetcherProtocol


@dataclass
class PhotoJobResources:
    """Everything the per-photo unit shares with its siblings in one export job.

    ``watermark`` is produced before any unit starts and never mutated, so it
    is shared without locking.
    """

    watermark: PreparedWatermark
    position: Position
    fetcher: PhotoFetcherProtocol
    logger: LoggerProtocol
    quality: int = 85
    max_pixels: int = 100_000_000
    executor: Optional[Executor] = None
    metrics: MetricsCollector = field(default_factory=MetricsCollector)
    log_context: LogContext = field(default_factory=LogContext)


@dataclass
class PhotoOutput:
    """A manifest entry plus the watermarked bytes when processing succeeded."""

    result: PhotoResult
    data: Optional[bytes] = None


async def process_single_photo(photo: Photo, resources: PhotoJobResources) -> PhotoOutput:
    """Process a single photo: Fetch → Composite → named JPEG buffer.

    Never raises for per-photo problems; fetch and image failures become a
    failed ``PhotoResult`` so sibling photos keep going.
    """
    start_time = time.time()
    output_name = build_output_name(photo.url, photo.sequence)
    result = PhotoResult(photo_id=photo.id, sequence=photo.sequence, output_name=output_name)
    context = resources.log_context.with_operation("process_photo").with_metadata(
        photo_id=photo.id, sequence=photo.sequence
    )
    data: Optional[bytes] = None

    try:
        resources.logger.debug("Fetching photo", context)
        source = await resources.fetcher.fetch(photo.url)

        resources.logger.debug(f"Compositing {len(source)} bytes", context)
        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(
            resources.executor,
            functools.partial(
                composite_watermark,
                source,
                resources.watermark,
                resources.position,
                quality=resources.quality,
                max_pixels=resources.max_pixels,
            ),
        )
        result.success = True

    except (FetchError, ImageProcessingError) as e:
        result.error = str(e)
        resources.logger.warning(f"Photo failed with {type(e).__name__}: {e}", context)
    except WatermarkExportError as e:
        result.error = e.message
        resources.logger.error(f"Photo failed: {e}", context)
    except Exception as e:  # noqa: BLE001
        result.error = str(e) or type(e).__name__
        resources.logger.error(f"Unexpected error processing photo: {e}", context)

    end_time = time.time()
    result.processing_time = end_time - start_time
    if not result.success:
        result.output_name = None
    resources.metrics.record_metric(
        PerformanceMetrics(
            operation="process_photo",
            start_time=start_time,
            end_time=end_time,
            success=result.success,
            error_message=result.error,
            metadata={"photo_id": photo.id},
        )
    )
    return PhotoOutput(result=result, data=data)


def count_results(results: List[PhotoResult]) -> tuple:
    """Return ``(succeeded, failed)`` counts."""
    succeeded = sum(1 for r in results if r.success)
    return succeeded, len(results) - succeeded


def log_group_progress(
    group_number: int,
    total_groups: int,
    processed: int,
    total_items: int,
    group_time: float,
    succeeded: int,
    failed: int,
) -> None:
    """Log progress after one concurrent group settles."""
    logger = get_logger("watermark-export.processor")
    progress = (processed / total_items) * 100 if total_items else 100.0
    logger.info(
        f"Group {group_number}/{total_groups} settled in {group_time:.2f}s - "
        f"Progress: {processed}/{total_items} ({progress:.1f}%) - "
        f"Success: {succeeded}, Errors: {failed}"
    )


def log_final_statistics(
    label: str, total_time: float, total_items: int, succeeded: int, failed: int
) -> None:
    """Log final processing statistics for one export request."""
    logger = get_logger("watermark-export.processor")
    overall_rate = total_items / total_time if total_time > 0 else 0
    logger.info(
        f"{label}: processed {total_items} photo(s) in {total_time:.1f}s "
        f"({overall_rate:.1f} photos/sec) - {succeeded} succeeded, {failed} failed"
    )
