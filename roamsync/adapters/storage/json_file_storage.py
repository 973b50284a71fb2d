"""JSON file key/value storage.

The whole store is one JSON object on disk. Writes go to a temporary
file that replaces the original, so a crash never leaves a torn file.
File I/O runs in a worker thread to keep the event loop responsive.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ...config import StorageConfig, get_config
from ...domain.errors import StorageError


@dataclass
class JsonFileStorage:
    """KeyValueStoragePort persisted to a single JSON file.

    Attributes:
        path: Location of the JSON file (created on first write)
    """

    path: Path = field(default_factory=lambda: get_config().storage.path)

    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: StorageConfig) -> JsonFileStorage:
        return cls(path=config.path)

    async def get_item(self, key: str) -> Optional[Any]:
        items = await asyncio.to_thread(self._read)
        return items.get(key)

    async def set_item(self, key: str, value: Any) -> None:
        async with self._lock:
            await asyncio.to_thread(self._update, key, value, False)

    async def remove_item(self, key: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._update, key, None, True)

    def _update(self, key: str, value: Any, remove: bool) -> None:
        items = self._read()
        if remove:
            if key not in items:
                return
            del items[key]
        else:
            items[key] = value
        self._write(items, key)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(
                f"Cannot read storage file {self.path}", cause=e
            ) from e
        if not isinstance(data, dict):
            raise StorageError(f"Storage file {self.path} is not a JSON object")
        return data

    def _write(self, items: Dict[str, Any], key: str) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(items, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError) as e:
            raise StorageError(
                f"Cannot write storage file {self.path}", cause=e, key=key
            ) from e
        self._logger.debug("Storage written", extra={"key": key})
