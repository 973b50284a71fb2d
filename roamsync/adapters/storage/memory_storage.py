"""In-memory key/value storage.

Nothing survives the process. Values are deep-copied on the way in and
out so callers cannot mutate stored state by accident.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class InMemoryStorage:
    """KeyValueStoragePort kept in a dict."""

    _items: Dict[str, Any] = field(default_factory=dict, repr=False)

    async def get_item(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._items.get(key))

    async def set_item(self, key: str, value: Any) -> None:
        self._items[key] = copy.deepcopy(value)

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items.keys())
