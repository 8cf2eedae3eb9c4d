import httpx
import pytest_asyncio

from watermark_export.api import create_app
from watermark_export.testing import TEST_TOKEN, build_test_context, setup_test_environment


@pytest_asyncio.fixture
async def api_env():
    """App wired to fakes plus an authenticated client."""
    store, fetcher = setup_test_environment(photo_count=5)
    context = build_test_context(store, fetcher)
    app = create_app(context)
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": f"Bearer {TEST_TOKEN}"},
    ) as client:
        yield client, context, fetcher
    context.close()
