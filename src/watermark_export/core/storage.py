"""In-memory collection store, optionally seeded from a JSON document."""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .models import Collection, Watermark, WatermarkConfig
from .protocols import CollectionStore


class InMemoryCollectionStore(CollectionStore):
    """
    Process-local store keyed by id.

    Watermark configs are keyed by ``(collection_id, user_id)``: each user keeps
    their own placement for a collection.
    """

    def __init__(
        self,
        collections: Optional[List[Collection]] = None,
        watermarks: Optional[List[Watermark]] = None,
        configs: Optional[List[WatermarkConfig]] = None,
    ):
        self._collections: Dict[str, Collection] = {c.id: c for c in collections or []}
        self._watermarks: Dict[str, Watermark] = {w.id: w for w in watermarks or []}
        self._configs: Dict[Tuple[str, str], WatermarkConfig] = {
            (c.collection_id, c.user_id): c for c in configs or []
        }
        self._lock = asyncio.Lock()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InMemoryCollectionStore":
        """Build a store from ``{"collections": [...], "watermarks": [...], "configs": [...]}``."""
        return cls(
            collections=[Collection.model_validate(c) for c in data.get("collections", [])],
            watermarks=[Watermark.model_validate(w) for w in data.get("watermarks", [])],
            configs=[WatermarkConfig.model_validate(c) for c in data.get("configs", [])],
        )

    @classmethod
    def from_json_file(cls, path: str) -> "InMemoryCollectionStore":
        with open(Path(path), "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def add_collection(self, collection: Collection) -> None:
        self._collections[collection.id] = collection

    def add_watermark(self, watermark: Watermark) -> None:
        self._watermarks[watermark.id] = watermark

    async def get_collection(self, collection_id: str) -> Optional[Collection]:
        return self._collections.get(collection_id)

    async def get_watermark(self, watermark_id: str) -> Optional[Watermark]:
        return self._watermarks.get(watermark_id)

    async def get_watermark_config(
        self, collection_id: str, user_id: str
    ) -> Optional[WatermarkConfig]:
        return self._configs.get((collection_id, user_id))

    async def save_watermark_config(self, config: WatermarkConfig) -> WatermarkConfig:
        async with self._lock:
            self._configs[(config.collection_id, config.user_id)] = config
        return config

    async def delete_watermark_config(self, collection_id: str, user_id: str) -> bool:
        async with self._lock:
            return self._configs.pop((collection_id, user_id), None) is not None

    async def list_watermark_configs(self, user_id: str) -> List[WatermarkConfig]:
        return [config for (_, owner), config in self._configs.items() if owner == user_id]
