"""Shared data models for the watermark export service."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WireModel(BaseModel):
    """Base model using camelCase field names on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Position(WireModel):
    """Top-left offset of the watermark on the source photo, in pixels."""

    x: float
    y: float


class Dimensions(WireModel):
    """Footprint the watermark is contain-fitted into, in pixels."""

    width: float = Field(gt=0)
    height: float = Field(gt=0)


class Watermark(WireModel):
    """A stored watermark asset."""

    id: str
    url: str
    is_watermark: bool = True


class WatermarkConfig(WireModel):
    """Watermark placement for one collection and user; immutable during an export job."""

    model_config = ConfigDict(frozen=True)

    id: str
    collection_id: str
    user_id: str
    watermark_id: str
    watermark_url: str
    position: Position
    dimensions: Dimensions
    rotation: float = 0.0


class WatermarkConfigRequest(WireModel):
    """Body of ``POST /collections/{id}/watermark``."""

    watermark_id: str = Field(min_length=1)
    position: Position
    dimensions: Dimensions
    rotation: Optional[float] = 0.0


class Photo(WireModel):
    """One entry of a collection; export order is ascending ``sequence``."""

    id: str
    url: str
    sequence: int = Field(ge=1)


class Collection(WireModel):
    """Canonical collection representation."""

    id: str
    name: str
    description: Optional[str] = None
    owner_id: str = ""
    photos: List[Photo] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)

    def ordered_photos(self) -> List[Photo]:
        """Photos in display/export order."""
        return sorted(self.photos, key=lambda photo: photo.sequence)

    def find_photo(self, photo_id: str) -> Optional[Photo]:
        for photo in self.photos:
            if photo.id == photo_id:
                return photo
        return None


class CollectionSummary(WireModel):
    """Listing projection of a collection."""

    id: str
    name: str
    description: Optional[str] = None
    photo_count: int
    thumbnail_url: Optional[str] = None
    created_at: datetime


class PhotoResult(WireModel):
    """Result of processing a single photo."""

    photo_id: str
    sequence: int
    success: bool = False
    output_name: Optional[str] = None
    error: Optional[str] = None
    processing_time: float = 0.0


class PageSlice(WireModel):
    """A contiguous slice of an ordered photo list."""

    scheme: str
    page_index: int
    page_size: int
    start: int
    end: int
    total_items: int
    total_pages: int

    @property
    def page_number(self) -> int:
        """1-based page number."""
        return self.page_index + 1

    @property
    def count(self) -> int:
        return self.end - self.start


class FailureEntry(WireModel):
    photo_id: str
    error: str


class ExportReport(WireModel):
    """Processing report placed in every export archive."""

    collection_id: str
    collection_name: str
    scheme: str
    page_number: int
    total_pages: int
    attempted: int
    succeeded: int
    failed: int
    failures: List[FailureEntry] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_results(
        cls,
        collection: Collection,
        page: PageSlice,
        results: List[PhotoResult],
    ) -> "ExportReport":
        failures = [
            FailureEntry(photo_id=r.photo_id, error=r.error or "Unknown error")
            for r in results
            if not r.success
        ]
        succeeded = sum(1 for r in results if r.success)
        return cls(
            collection_id=collection.id,
            collection_name=collection.name,
            scheme=page.scheme,
            page_number=page.page_number,
            total_pages=page.total_pages,
            attempted=len(results),
            succeeded=succeeded,
            failed=len(failures),
            failures=failures,
        )


class ExportArchive(BaseModel):
    """What an export request emits: a ZIP payload plus its report."""

    filename: str
    content: bytes
    report: ExportReport
    results: List[PhotoResult] = Field(default_factory=list)


class SizePlan(WireModel):
    """Paging plan reported before any image is processed."""

    total_photos: int
    total_chunks: int
    chunk_size: int
    max_photos: int
    has_watermark_config: bool
