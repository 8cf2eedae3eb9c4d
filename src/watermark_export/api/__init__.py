"""HTTP surface of the watermark export service."""

from .app import create_app

__all__ = ["create_app"]
