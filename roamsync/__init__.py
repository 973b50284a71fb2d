"""Top-level package for the roamsync client core.

This package holds the data-synchronization core of the travel-community
client: the response cache and request coalescer, the API gateway, the
session and travel-profile stores, and the bootstrap routing decision.

Build the object graph with ``Container.create_default()``.
"""

__version__ = "0.1.0"
