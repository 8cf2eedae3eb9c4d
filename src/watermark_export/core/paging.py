"""Paging of large collections into bounded per-request slices.

One primitive, :func:`paginate`, slices any ordered list by a 0-based page
index. Batch mode (1-based ``batch`` numbers) and chunk mode (0-based
``chunk`` indices with an echoed ``totalChunks`` hint) are thin shims over it.
"""

import math
from dataclasses import dataclass
from typing import Optional

from .exceptions import BadRequestError
from .models import PageSlice, SizePlan

BATCH_SIZE = 40
CHUNK_SIZE = 50
MAX_EXPORT_PHOTOS = 500


@dataclass(frozen=True)
class PagingScheme:
    """How one export route pages through a collection."""

    name: str
    page_size: int
    concurrency: int
    report_name: str
    index_base: int


def batch_scheme(page_size: int = BATCH_SIZE, concurrency: int = 3) -> PagingScheme:
    return PagingScheme(
        name="batch",
        page_size=page_size,
        concurrency=concurrency,
        report_name="processing_report.txt",
        index_base=1,
    )


def chunk_scheme(page_size: int = CHUNK_SIZE, concurrency: int = 5) -> PagingScheme:
    return PagingScheme(
        name="chunk",
        page_size=page_size,
        concurrency=concurrency,
        report_name="chunk_metadata.json",
        index_base=0,
    )


def total_pages(total_items: int, page_size: int) -> int:
    if page_size <= 0:
        raise BadRequestError(f"Page size must be positive, got {page_size}")
    return math.ceil(total_items / page_size)


def paginate(
    total_items: int,
    page_size: int,
    page_index: int,
    scheme: str = "page",
    index_base: int = 0,
) -> PageSlice:
    """
    Compute the slice of an ordered list served by one page.

    Args:
        total_items: Length of the ordered list
        page_size: Items per page
        page_index: 0-based page index
        scheme: Name recorded on the slice
        index_base: Base the caller counts pages from, used in error messages

    Returns:
        PageSlice with ``start``/``end`` bounds

    Raises:
        BadRequestError: If the index is outside ``0..total_pages - 1``
    """
    pages = total_pages(total_items, page_size)
    if pages == 0:
        raise BadRequestError("Collection has no photos")

    if page_index < 0 or page_index >= pages:
        first = index_base
        last = pages - 1 + index_base
        raise BadRequestError(
            f"Invalid {scheme} number {page_index + index_base}. "
            f"Valid range is {first}..{last}"
        )

    start = page_index * page_size
    end = min(start + page_size, total_items)
    return PageSlice(
        scheme=scheme,
        page_index=page_index,
        page_size=page_size,
        start=start,
        end=end,
        total_items=total_items,
        total_pages=pages,
    )


def batch_page(
    total_items: int,
    batch_number: int,
    size: Optional[int] = None,
    max_size: int = BATCH_SIZE,
) -> PageSlice:
    """
    Batch-mode shim: 1-based ``batch_number``, ``size`` capped at ``max_size``.
    """
    page_size = max_size if size is None else size
    if page_size < 1 or page_size > max_size:
        raise BadRequestError(f"Invalid batch size {page_size}. Valid range is 1..{max_size}")
    return paginate(
        total_items,
        page_size,
        batch_number - 1,
        scheme="batch",
        index_base=1,
    )


def chunk_page(total_items: int, chunk_index: int, chunk_size: int = CHUNK_SIZE) -> PageSlice:
    """
    Chunk-mode shim: 0-based ``chunk_index``.

    The client's ``totalChunks`` is deliberately not an input: slicing is
    derived from ``chunk_index * chunk_size`` only.
    """
    return paginate(
        total_items,
        chunk_size,
        chunk_index,
        scheme="chunk",
        index_base=0,
    )


def exportable_count(total_photos: int, max_photos: int = MAX_EXPORT_PHOTOS) -> int:
    return min(total_photos, max_photos)


def plan_size(
    total_photos: int,
    has_watermark_config: bool,
    chunk_size: int = CHUNK_SIZE,
    max_photos: int = MAX_EXPORT_PHOTOS,
) -> SizePlan:
    """Paging plan for chunk mode, computed without touching any image."""
    return SizePlan(
        total_photos=total_photos,
        total_chunks=total_pages(exportable_count(total_photos, max_photos), chunk_size),
        chunk_size=chunk_size,
        max_photos=max_photos,
        has_watermark_config=has_watermark_config,
    )
