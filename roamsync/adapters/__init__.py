"""Adapters layer - Concrete implementations of ports.

This module contains implementations of the port interfaces,
connecting the client core to external systems:
- HTTP transport (httpx)
- Persisted device storage (JSON file, in-memory)
- Response caching (in-memory with TTL, null)
"""
