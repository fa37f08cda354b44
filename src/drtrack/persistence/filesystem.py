"""File-based local cache: one JSON array per collection."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config import settings

logger = logging.getLogger(__name__)


class LocalCache:
    """Thin wrapper around the cache directory storing whole collections as JSON."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.cache_dir).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, collection: str) -> Path:
        return self.root / f"{collection}.json"

    def read_collection(self, collection: str) -> list[dict[str, Any]]:
        """Return the cached records, or an empty list when nothing was written yet."""
        path = self.path_for(collection)
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as e:
            self._quarantine(path, e)
            return []
        if not isinstance(data, list):
            logger.warning(f"Local cache '{collection}' does not hold a JSON array - ignoring it")
            return []
        return [item for item in data if isinstance(item, dict)]

    def write_collection(self, collection: str, records: list[dict[str, Any]]) -> None:
        path = self.path_for(collection)
        self.write_json(path, records)
        logger.debug(f"Wrote {len(records)} records to local cache '{collection}'")

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=indent)
        os.replace(tmp_path, path)

    def _quarantine(self, path: Path, error: Exception) -> None:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        backup = path.with_name(f"{path.stem}.corrupt-{timestamp}.json")
        os.replace(path, backup)
        logger.error(f"Local cache file {path.name} is not valid JSON ({error}); moved it to {backup.name}")
