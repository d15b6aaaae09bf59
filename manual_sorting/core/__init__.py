"""Core order-management layer: models, store, queue, tree view and services."""

from .events import EditEvent, EditEventBus, EditEventKind
from .exceptions import DuplicateDestinationError, MissingParentError, OrderingError, OrderStoreError
from .models import EntryKind, OrderDocument, TreeEntry, default_document, flatten_paths
from .order_manager import OrderManager
from .queue import OperationQueue
from .store import JsonFileBackend, MemoryBackend, OrderStore
from .tree import TreeHost, TreeWalker

__all__ = [
    "EditEvent",
    "EditEventBus",
    "EditEventKind",
    "DuplicateDestinationError",
    "MissingParentError",
    "OrderingError",
    "OrderStoreError",
    "EntryKind",
    "OrderDocument",
    "TreeEntry",
    "default_document",
    "flatten_paths",
    "OrderManager",
    "OperationQueue",
    "JsonFileBackend",
    "MemoryBackend",
    "OrderStore",
    "TreeHost",
    "TreeWalker",
]
