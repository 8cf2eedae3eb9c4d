"""Tests for batch/chunk paging."""

import pytest

from watermark_export.core.exceptions import BadRequestError
from watermark_export.core.paging import (
    batch_page,
    batch_scheme,
    chunk_page,
    chunk_scheme,
    paginate,
    plan_size,
    total_pages,
)


class TestPaginate:
    @pytest.mark.parametrize("total, size", [(1, 40), (40, 40), (41, 40), (123, 50), (500, 50), (7, 3)])
    def test_pages_cover_list_exactly_once(self, total, size):
        covered = []
        for index in range(total_pages(total, size)):
            page = paginate(total, size, index)
            assert 0 < page.count <= size
            covered.extend(range(page.start, page.end))
        assert covered == list(range(total))

    def test_last_page_is_partial(self):
        page = paginate(45, 40, 1)
        assert (page.start, page.end, page.total_pages) == (40, 45, 2)

    def test_empty_list_rejected(self):
        with pytest.raises(BadRequestError, match="no photos"):
            paginate(0, 40, 0)

    def test_negative_index_rejected(self):
        with pytest.raises(BadRequestError):
            paginate(10, 5, -1)


class TestBatchPage:
    def test_batch_is_one_based(self):
        page = batch_page(100, 1)
        assert (page.start, page.end) == (0, 40)
        assert page.page_number == 1
        assert page.total_pages == 3

    @pytest.mark.parametrize("batch", [0, 4])
    def test_out_of_range_names_valid_range(self, batch):
        with pytest.raises(BadRequestError) as exc_info:
            batch_page(100, batch)
        assert "1..3" in exc_info.value.message
        assert exc_info.value.status_code == 400

    def test_smaller_size_allowed(self):
        page = batch_page(100, 2, size=10)
        assert (page.start, page.end, page.total_pages) == (10, 20, 10)

    @pytest.mark.parametrize("size", [0, 41])
    def test_size_outside_limit_rejected(self, size):
        with pytest.raises(BadRequestError, match="1..40"):
            batch_page(100, 1, size=size)


class TestChunkPage:
    def test_chunk_is_zero_based(self):
        page = chunk_page(120, 2)
        assert (page.start, page.end) == (100, 120)
        assert page.page_number == 3

    def test_out_of_range_names_valid_range(self):
        with pytest.raises(BadRequestError, match="0..2"):
            chunk_page(120, 3)


class TestPlanSize:
    @pytest.mark.parametrize(
        "total, chunks",
        [(0, 0), (1, 1), (50, 1), (51, 2), (499, 10), (500, 10), (1200, 10)],
    )
    def test_total_chunks_caps_at_max_photos(self, total, chunks):
        plan = plan_size(total, has_watermark_config=True)
        assert plan.total_chunks == chunks
        assert plan.total_photos == total
        assert plan.max_photos == 500
        assert plan.chunk_size == 50

    def test_wire_shape(self):
        assert set(plan_size(10, True).to_wire()) == {
            "totalPhotos",
            "totalChunks",
            "chunkSize",
            "maxPhotos",
            "hasWatermarkConfig",
        }


def test_schemes():
    assert batch_scheme().report_name == "processing_report.txt"
    assert batch_scheme().concurrency == 3
    assert chunk_scheme().report_name == "chunk_metadata.json"
    assert chunk_scheme().concurrency == 5
