"""Testing utilities and fakes for the watermark export service."""

from .fakes import (
    TEST_COLLECTION,
    TEST_TOKEN,
    TEST_USER,
    TEST_WATERMARK,
    WATERMARK_URL,
    FakeLogger,
    FakePhotoFetcher,
    build_test_collection,
    build_test_config,
    build_test_context,
    create_test_image,
    create_watermark_image,
    photo_url,
    setup_test_environment,
)

__all__ = [
    "TEST_COLLECTION",
    "TEST_TOKEN",
    "TEST_USER",
    "TEST_WATERMARK",
    "WATERMARK_URL",
    "FakeLogger",
    "FakePhotoFetcher",
    "build_test_collection",
    "build_test_config",
    "build_test_context",
    "create_test_image",
    "create_watermark_image",
    "photo_url",
    "setup_test_environment",
]
