"""Storage port - Persisted device key/value storage.

Values are JSON-compatible. Reads and writes are suspension points.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol


class KeyValueStoragePort(Protocol):
    """Port for persisted device storage.

    Implementations:
    - adapters/storage/json_file_storage.py (JsonFileStorage) - Production
    - adapters/storage/memory_storage.py (InMemoryStorage) - Testing
    """

    async def get_item(self, key: str) -> Optional[Any]:
        """Read a value.

        Raises:
            StorageError: If the storage cannot be read.
        """
        ...

    async def set_item(self, key: str, value: Any) -> None:
        """Write a value.

        Raises:
            StorageError: If the storage cannot be written.
        """
        ...

    async def remove_item(self, key: str) -> None:
        """Delete a value; missing keys are ignored.

        Raises:
            StorageError: If the storage cannot be written.
        """
        ...
