"""Core models, configuration and shared utilities for the watermark export service."""

from .logging_config import (
    configure_service_logging,
    get_logger,
    setup_logger,
)
from .exceptions import (
    WatermarkExportError,
    AuthenticationError,
    BadRequestError,
    ConfigurationError,
    FetchError,
    ImageProcessingError,
    JobFailedError,
    NotFoundError,
    WatermarkSourceError,
    with_error_handling,
)
from .models import (
    Collection,
    CollectionSummary,
    Dimensions,
    ExportArchive,
    ExportReport,
    PageSlice,
    Photo,
    PhotoResult,
    Position,
    SizePlan,
    Watermark,
    WatermarkConfig,
    WatermarkConfigRequest,
)

__all__ = [
    "Collection",
    "CollectionSummary",
    "Dimensions",
    "ExportArchive",
    "ExportReport",
    "PageSlice",
    "Photo",
    "PhotoResult",
    "Position",
    "SizePlan",
    "Watermark",
    "WatermarkConfig",
    "WatermarkConfigRequest",
    "setup_logger",
    "get_logger",
    "configure_service_logging",
    "WatermarkExportError",
    "AuthenticationError",
    "BadRequestError",
    "ConfigurationError",
    "FetchError",
    "ImageProcessingError",
    "JobFailedError",
    "NotFoundError",
    "WatermarkSourceError",
    "with_error_handling",
]
