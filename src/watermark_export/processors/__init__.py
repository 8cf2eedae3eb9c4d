"""Per-photo processing unit and the bounded-concurrency batch scheduler."""

from .asyncio_processor import process_in_groups, process_photos
from .common import PhotoJobResources, PhotoOutput, process_single_photo

__all__ = [
    "PhotoJobResources",
    "PhotoOutput",
    "process_single_photo",
    "process_in_groups",
    "process_photos",
]
