"""Archive member and download filename helpers."""

import posixpath
import re
from urllib.parse import unquote, urlparse

DEFAULT_PHOTO_NAME = "photo.jpg"
JPEG_EXTENSIONS = (".jpg", ".jpeg")
_UNSAFE_CHARS = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def source_filename(url: str) -> str:
    """
    Final path segment of a photo URL.

    Works for ``http(s)://`` and ``s3://bucket/key`` alike; query strings and
    fragments are ignored.

    Args:
        url: Photo source URL

    Returns:
        The decoded last path segment, or ``photo.jpg`` if there is none
    """
    path = urlparse(url).path
    name = unquote(posixpath.basename(path)).replace("/", "_")
    return name or DEFAULT_PHOTO_NAME


def as_jpeg_name(filename: str) -> str:
    """Rewrite the extension to ``.jpg`` unless it already names a JPEG."""
    stem, ext = posixpath.splitext(filename)
    if ext.lower() in JPEG_EXTENSIONS:
        return filename
    return f"{stem or 'photo'}.jpg"


def build_output_name(url: str, sequence: int) -> str:
    """
    Archive member name for a photo: ``<4-digit sequence>_<original name>``.

    Zero-padding keeps archives sorted by sequence regardless of the
    extracting filesystem's collation.
    """
    return f"{sequence:04d}_{as_jpeg_name(source_filename(url))}"


def safe_archive_stem(collection_name: str) -> str:
    """Collection name with every non-alphanumeric character replaced, lowercased."""
    return _UNSAFE_CHARS.sub("_", collection_name).lower()
