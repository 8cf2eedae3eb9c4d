"""Tests for archive member and filename helpers."""

import pytest

from watermark_export.core.naming import (
    as_jpeg_name,
    build_output_name,
    safe_archive_stem,
    source_filename,
)


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://cdn.test/a/b/IMG_0001.jpg", "IMG_0001.jpg"),
        ("https://cdn.test/a/IMG%20one.jpg?token=abc#frag", "IMG one.jpg"),
        ("s3://bucket/photos/2024/beach.JPG", "beach.JPG"),
        ("https://cdn.test/", "photo.jpg"),
    ],
)
def test_source_filename(url, expected):
    assert source_filename(url) == expected


@pytest.mark.parametrize(
    "name, expected",
    [
        ("a.jpg", "a.jpg"),
        ("a.JPEG", "a.JPEG"),
        ("a.png", "a.jpg"),
        ("a.webp", "a.jpg"),
        ("noext", "noext.jpg"),
    ],
)
def test_as_jpeg_name(name, expected):
    assert as_jpeg_name(name) == expected


def test_build_output_name_pads_sequence():
    assert build_output_name("https://cdn.test/x/sunset.png", 7) == "0007_sunset.jpg"
    assert build_output_name("https://cdn.test/x/sunset.jpg", 123) == "0123_sunset.jpg"


def test_output_names_sort_by_sequence():
    names = [build_output_name(f"https://cdn.test/{n}.jpg", n) for n in (2, 10, 1)]
    assert sorted(names) == ["0001_1.jpg", "0002_2.jpg", "0010_10.jpg"]


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Summer 2024", "summer_2024"),
        ("Wedding: Anna & Bo!", "wedding__anna___bo_"),
        ("Café", "caf_"),
    ],
)
def test_safe_archive_stem(name, expected):
    assert safe_archive_stem(name) == expected
