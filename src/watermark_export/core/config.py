"""Runtime settings for the watermark export service."""

from typing import Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ``WATERMARK_EXPORT_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="WATERMARK_EXPORT_",
        env_file=".env",
        extra="ignore",
    )

    # Paging
    batch_size: int = 40
    chunk_size: int = 50
    max_export_photos: int = 500

    # Concurrency (photos in flight per group)
    batch_concurrency: int = 3
    chunk_concurrency: int = 5
    executor_workers: int = 4

    # Network
    fetch_timeout: float = 10.0
    fetch_max_attempts: int = 2
    fetch_retry_delay: float = 0.5
    s3_endpoint_url: Optional[str] = None

    # Imaging
    max_input_pixels: int = 100_000_000
    export_jpeg_quality: int = 85
    preview_jpeg_quality: int = 90
    zip_compress_level: int = 3

    # Service
    api_tokens: str = ""
    data_file: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    log_format: str = "structured"

    @property
    def token_map(self) -> Dict[str, str]:
        """Parse ``token:user_id`` pairs from ``api_tokens``."""
        tokens: Dict[str, str] = {}
        for pair in self.api_tokens.split(","):
            pair = pair.strip()
            if not pair or ":" not in pair:
                continue
            token, user_id = pair.split(":", 1)
            tokens[token.strip()] = user_id.strip()
        return tokens
