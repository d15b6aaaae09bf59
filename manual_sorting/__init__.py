"""Top-level package for the manual sorting core.

Hosts depend on the public API exposed here (the order manager, the event bus
and the storage backends) rather than importing internal modules directly.
"""

from .core import EditEventBus, JsonFileBackend, MemoryBackend, OrderManager  # re-export for convenience

__all__: list[str] = [
    "EditEventBus",
    "JsonFileBackend",
    "MemoryBackend",
    "OrderManager",
]
