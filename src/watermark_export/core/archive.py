"""ZIP assembly of watermarked photos plus a processing report."""

import io
import json
import posixpath
import zipfile
from typing import Dict, List, Optional

from .logging_config import get_logger
from .models import ExportReport, PageSlice
from .naming import safe_archive_stem

DEFAULT_COMPRESS_LEVEL = 3


class ArchiveAssembler:
    """
    Accumulates named members into an in-memory, deflate-compressed ZIP.

    Members are stored in the order they are added. Inputs are already
    JPEG-compressed, so a low compression level is used.
    """

    def __init__(self, compress_level: int = DEFAULT_COMPRESS_LEVEL):
        self._buffer = io.BytesIO()
        self._zip = zipfile.ZipFile(
            self._buffer,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=compress_level,
        )
        self._names: Dict[str, int] = {}
        self._members: List[str] = []
        self._closed = False
        self._logger = get_logger("watermark-export.archive")

    @property
    def member_names(self) -> List[str]:
        return list(self._members)

    def _unique_name(self, name: str) -> str:
        if name not in self._names:
            self._names[name] = 1
            return name
        self._names[name] += 1
        stem, ext = posixpath.splitext(name)
        candidate = f"{stem}_{self._names[name]}{ext}"
        return self._unique_name(candidate)

    def add_member(self, name: str, data: bytes) -> str:
        """Add one file; returns the name actually used (suffixed on collision)."""
        if self._closed:
            raise RuntimeError("Archive already built")
        member = self._unique_name(name)
        self._zip.writestr(member, data)
        self._members.append(member)
        return member

    def add_text(self, name: str, text: str) -> str:
        return self.add_member(name, text.encode("utf-8"))

    def build(self) -> bytes:
        """Finalize the archive and return its bytes."""
        if not self._closed:
            self._zip.close()
            self._closed = True
            self._logger.debug(
                f"Archive built with {len(self._members)} member(s), "
                f"{self._buffer.tell() // 1024} KB"
            )
        return self._buffer.getvalue()


def render_text_report(report: ExportReport) -> str:
    """Plain-text processing report used by batch exports."""
    lines = [
        f"Collection: {report.collection_name}",
        f"Collection ID: {report.collection_id}",
        f"{report.scheme.capitalize()}: {report.page_number} of {report.total_pages}",
        f"Photos attempted: {report.attempted}",
        f"Photos succeeded: {report.succeeded}",
        f"Photos failed: {report.failed}",
        f"Generated at: {report.generated_at.isoformat()}",
    ]
    if report.failures:
        lines.append("")
        lines.append("Failures:")
        for failure in report.failures:
            lines.append(f"  - {failure.photo_id}: {failure.error}")
    return "\n".join(lines) + "\n"


def render_chunk_metadata(
    report: ExportReport,
    page: PageSlice,
    total_chunks_hint: Optional[int] = None,
) -> str:
    """JSON metadata used by chunk exports.

    ``totalChunks`` echoes the client's hint when one was sent.
    """
    payload = {
        "chunkIndex": page.page_index,
        "totalChunks": total_chunks_hint if total_chunks_hint is not None else page.total_pages,
        "startIndex": page.start,
        "endIndex": page.end,
        "totalPhotos": page.total_items,
        "collectionName": report.collection_name,
        "collectionId": report.collection_id,
        "attempted": report.attempted,
        "succeeded": report.succeeded,
        "failed": report.failed,
        "failures": [failure.to_wire() for failure in report.failures],
        "generatedAt": report.generated_at.isoformat(),
    }
    return json.dumps(payload, indent=2)


def archive_filename(collection_name: str, page: PageSlice, total_label: Optional[int] = None) -> str:
    """
    Download filename, e.g. ``summer_2024_batch_2_of_5.zip``.

    ``total_label`` overrides the page count shown in the name (chunk mode
    echoes the client's ``totalChunks``).
    """
    total = total_label if total_label is not None else page.total_pages
    return f"{safe_archive_stem(collection_name)}_{page.scheme}_{page.page_number}_of_{total}.zip"
