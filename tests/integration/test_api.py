"""Integration tests for the HTTP API."""

import io
import json
import zipfile

import pytest

from watermark_export.testing import TEST_COLLECTION, TEST_USER, WATERMARK_URL, photo_url

BASE = f"/collections/{TEST_COLLECTION}"


def _names(content: bytes):
    with zipfile.ZipFile(io.BytesIO(content)) as archive:
        return archive.namelist()


class TestAuth:
    @pytest.mark.parametrize(
        "headers",
        [{"Authorization": ""}, {"Authorization": "Bearer wrong"}, {"Authorization": "Basic abc"}],
    )
    async def test_rejects_unauthenticated(self, api_env, headers):
        client, _, fetcher = api_env
        response = await client.get(f"{BASE}/download", headers=headers)
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert fetcher.fetch_log == []

    async def test_health_is_public(self, api_env):
        client, _, _ = api_env
        response = await client.get("/health", headers={"Authorization": ""})
        assert response.json() == {"status": "healthy"}


class TestDownload:
    async def test_batch_zip(self, api_env):
        client, _, _ = api_env
        response = await client.get(f"{BASE}/download", params={"batch": 1})

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        assert response.headers["cache-control"] == "no-store"
        assert (
            response.headers["content-disposition"]
            == 'attachment; filename="summer_2024_batch_1_of_1.zip"'
        )
        names = _names(response.content)
        assert names[0] == "0001_IMG_0001.jpg"
        assert names[-1] == "processing_report.txt"

    async def test_batch_size_param(self, api_env):
        client, _, _ = api_env
        response = await client.get(f"{BASE}/download", params={"batch": 2, "size": 2})
        assert response.status_code == 200
        assert _names(response.content)[:2] == ["0003_IMG_0003.jpg", "0004_IMG_0004.jpg"]

    @pytest.mark.parametrize("batch", [0, 2])
    async def test_batch_out_of_range(self, api_env, batch):
        client, _, _ = api_env
        response = await client.get(f"{BASE}/download", params={"batch": batch})
        assert response.status_code == 400
        assert "1..1" in response.json()["error"]

    async def test_non_numeric_batch_is_bad_request(self, api_env):
        client, _, _ = api_env
        response = await client.get(f"{BASE}/download", params={"batch": "two"})
        assert response.status_code == 400
        assert "error" in response.json()

    async def test_unknown_collection(self, api_env):
        client, _, _ = api_env
        response = await client.get("/collections/missing/download")
        assert response.status_code == 404
        assert response.json() == {"error": "Collection not found"}

    async def test_all_failed_is_server_error(self, api_env):
        client, _, fetcher = api_env
        for i in range(1, 6):
            fetcher.set_failure(photo_url(i))
        response = await client.get(f"{BASE}/download")
        assert response.status_code == 500
        assert "Failed to process any photos" in response.json()["error"]

    async def test_watermark_source_failure(self, api_env):
        client, _, fetcher = api_env
        fetcher.set_failure(WATERMARK_URL)
        response = await client.get(f"{BASE}/download")
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch watermark image"}


class TestChunkedDownload:
    async def test_chunk_zip_with_metadata(self, api_env):
        client, _, _ = api_env
        response = await client.get(
            f"{BASE}/chunked-download", params={"chunk": 0, "totalChunks": 4}
        )
        assert response.status_code == 200
        assert 'filename="summer_2024_chunk_1_of_4.zip"' in response.headers["content-disposition"]
        with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
            metadata = json.loads(archive.read("chunk_metadata.json"))
        assert metadata["totalChunks"] == 4
        assert metadata["succeeded"] == 5

    async def test_chunk_out_of_range(self, api_env):
        client, _, _ = api_env
        response = await client.get(f"{BASE}/chunked-download", params={"chunk": 1})
        assert response.status_code == 400
        assert "0..0" in response.json()["error"]


class TestSizeAndPreview:
    async def test_size(self, api_env):
        client, _, _ = api_env
        response = await client.get(f"{BASE}/size")
        assert response.status_code == 200
        assert response.json() == {
            "totalPhotos": 5,
            "totalChunks": 1,
            "chunkSize": 50,
            "maxPhotos": 500,
            "hasWatermarkConfig": True,
        }

    async def test_preview(self, api_env):
        client, _, _ = api_env
        response = await client.get(f"{BASE}/photos/p2/watermarked")
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert 'filename="watermarked_p2.jpg"' in response.headers["content-disposition"]
        assert "no-cache" in response.headers["cache-control"]
        assert response.content[:2] == b"\xff\xd8"

    async def test_preview_unknown_photo(self, api_env):
        client, _, _ = api_env
        response = await client.get(f"{BASE}/photos/nope/watermarked")
        assert response.status_code == 404


class TestWatermarkConfigEndpoints:
    BODY = {
        "watermarkId": "wm-1",
        "position": {"x": 12, "y": 8},
        "dimensions": {"width": 30, "height": 15},
        "rotation": 15,
    }

    async def test_save_get_delete(self, api_env):
        client, _, _ = api_env
        saved = await client.post(f"{BASE}/watermark", json=self.BODY)
        assert saved.status_code == 200
        assert saved.json()["position"] == {"x": 12.0, "y": 8.0}
        assert saved.json()["rotation"] == 15.0

        fetched = await client.get(f"{BASE}/watermark")
        assert fetched.json()["id"] == saved.json()["id"]

        deleted = await client.delete(f"{BASE}/watermark")
        assert deleted.json() == {"success": True}
        assert (await client.get(f"{BASE}/watermark")).status_code == 404

    async def test_invalid_body_is_bad_request(self, api_env):
        client, _, _ = api_env
        body = dict(self.BODY, dimensions={"width": 0, "height": 15})
        response = await client.post(f"{BASE}/watermark", json=body)
        assert response.status_code == 400
        assert "error" in response.json()

    @pytest.mark.parametrize(
        "raw",
        [
            '{"watermarkId":"wm-1","position":{"x":NaN,"y":10},'
            '"dimensions":{"width":30,"height":10},"rotation":0}',
            '{"watermarkId":"wm-1","position":{"x":1,"y":10},'
            '"dimensions":{"width":Infinity,"height":10},"rotation":0}',
            '{"watermarkId":"wm-1","position":{"x":1,"y":10},'
            '"dimensions":{"width":30,"height":10},"rotation":NaN}',
        ],
    )
    async def test_non_finite_numbers_rejected_before_saving(self, api_env, raw):
        client, context, _ = api_env
        before = await context.store.get_watermark_config(TEST_COLLECTION, TEST_USER)

        response = await client.post(
            f"{BASE}/watermark",
            content=raw,
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert "error" in response.json()
        after = await context.store.get_watermark_config(TEST_COLLECTION, TEST_USER)
        assert after == before
        download = await client.get(f"{BASE}/download")
        assert download.status_code == 200

    async def test_unknown_watermark(self, api_env):
        client, _, _ = api_env
        body = dict(self.BODY, watermarkId="missing")
        response = await client.post(f"{BASE}/watermark", json=body)
        assert response.status_code == 404
        assert response.json() == {"error": "Watermark not found"}


class TestAccount:
    async def test_watermarked_collections(self, api_env):
        client, _, _ = api_env
        response = await client.get("/account/watermarked-collections")
        assert response.status_code == 200
        [summary] = response.json()
        assert summary["id"] == TEST_COLLECTION
        assert summary["photoCount"] == 5
        assert summary["thumbnailUrl"] == photo_url(1)


async def test_unexpected_error_is_generic(api_env, monkeypatch):
    client, context, _ = api_env

    async def boom(*args, **kwargs):
        raise RuntimeError("database exploded")

    monkeypatch.setattr(context.sizes, "plan", boom)
    response = await client.get(f"{BASE}/size")
    assert response.status_code == 500
    assert response.json() == {"error": "An unexpected error occurred"}
