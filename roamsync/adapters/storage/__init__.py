"""Storage adapters - Implementations of the KeyValueStoragePort.

Available implementations:
- JsonFileStorage: Device storage persisted to a JSON file
- InMemoryStorage: Process-local storage for tests and ephemeral runs
"""

from .json_file_storage import JsonFileStorage
from .memory_storage import InMemoryStorage

__all__ = ["JsonFileStorage", "InMemoryStorage"]
