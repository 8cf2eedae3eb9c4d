"""AsyncIO batch scheduler - fixed-size concurrent groups with slot-preserving results."""

import asyncio
import gc
import time
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from ..core import Photo, PhotoResult
from .common import (
    PhotoJobResources,
    PhotoOutput,
    count_results,
    log_group_progress,
    process_single_photo,
)

T = TypeVar("T")
R = TypeVar("R")


async def process_in_groups(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    concurrency: int,
    on_error: Callable[[T, Exception], R],
    on_group_done: Optional[Callable[[int, int, List[R]], None]] = None,
    reclaim_memory: bool = True,
) -> List[R]:
    """
    Run ``worker`` over ``items`` in groups of ``concurrency``.

    Each group fully settles before the next starts, so at most
    ``concurrency`` items are in flight. Outcomes land in a pre-allocated slot
    per input position: the returned list is in input order no matter which
    worker finished first.

    Args:
        items: Ordered inputs
        worker: Coroutine function processing one item
        concurrency: Group size (K)
        on_error: Converts an exception escaping ``worker`` into a result
        on_group_done: Called with ``(group_number, total_groups, group_results)``
        reclaim_memory: Run a GC pass between groups

    Returns:
        Results in input order
    """
    if concurrency < 1:
        raise ValueError(f"Concurrency must be at least 1, got {concurrency}")

    slots: List[Optional[R]] = [None] * len(items)
    total_groups = (len(items) + concurrency - 1) // concurrency

    for group_start in range(0, len(items), concurrency):
        group = items[group_start : group_start + concurrency]
        outcomes = await asyncio.gather(
            *(worker(item) for item in group), return_exceptions=True
        )

        for offset, outcome in enumerate(outcomes):
            if isinstance(outcome, Exception):
                slots[group_start + offset] = on_error(group[offset], outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                slots[group_start + offset] = outcome  # type: ignore[assignment]

        if on_group_done is not None:
            group_number = group_start // concurrency + 1
            on_group_done(
                group_number,
                total_groups,
                slots[group_start : group_start + len(group)],  # type: ignore[arg-type]
            )

        if reclaim_memory and group_start + concurrency < len(items):
            gc.collect()

    return slots  # type: ignore[return-value]


def _failed_output(photo: Photo, error: Exception) -> PhotoOutput:
    return PhotoOutput(
        result=PhotoResult(
            photo_id=photo.id,
            sequence=photo.sequence,
            success=False,
            error=str(error) or type(error).__name__,
        )
    )


async def process_photos(
    photos: Sequence[Photo],
    resources: PhotoJobResources,
    concurrency: int,
) -> List[PhotoOutput]:
    """Process an ordered slice of photos with at most ``concurrency`` in flight."""
    started = time.time()
    processed = 0
    succeeded_total = 0
    failed_total = 0

    def _progress(group_number: int, total_groups: int, group: List[PhotoOutput]) -> None:
        nonlocal processed, succeeded_total, failed_total, started
        succeeded, failed = count_results([output.result for output in group])
        processed += len(group)
        succeeded_total += succeeded
        failed_total += failed
        now = time.time()
        log_group_progress(
            group_number,
            total_groups,
            processed,
            len(photos),
            now - started,
            succeeded_total,
            failed_total,
        )
        started = now

    return await process_in_groups(
        photos,
        lambda photo: process_single_photo(photo, resources),
        concurrency,
        on_error=_failed_output,
        on_group_done=_progress,
    )
