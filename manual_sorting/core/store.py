from __future__ import annotations

"""Persistence of the order document.

The order document lives inside the host's settings store, nested under a
single namespacing key::

    {"customFileOrder": {"/": ["a.md", "folder1"], "folder1": ["folder1/c.md"]}}

Older releases wrote folder keys directly at the top level. :class:`OrderStore`
detects that flat form on load and relocates every non-reserved folder entry
under the namespace, persisting the migrated form once.

Public API:
- StorageBackend: protocol implemented by host settings stores
- JsonFileBackend / MemoryBackend: ready-made backends
- OrderStore.load() / save(doc) / reset()
"""

import asyncio
import json
import logging
import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Protocol, Tuple

from .exceptions import OrderStoreError
from .models import OrderDocument, copy_document, default_document, unique_paths
from .paths import ROOT, normalize_path

__all__ = ["StorageBackend", "JsonFileBackend", "MemoryBackend", "OrderStore", "DEFAULT_NAMESPACE_KEY"]

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE_KEY = "customFileOrder"


class StorageBackend(Protocol):
    """Asynchronous key/value settings store owned by the host."""

    async def load_data(self) -> Optional[Dict[str, Any]]:
        ...

    async def save_data(self, data: Dict[str, Any]) -> None:
        ...


class JsonFileBackend:
    """Settings stored as a single JSON file.

    File access runs in a worker thread so the event loop keeps serving
    other producers while the disk is busy. Writes go to a sibling temp file
    first and replace the target atomically.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def load_data(self) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._read)

    async def save_data(self, data: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, data)

    def _read(self) -> Optional[Dict[str, Any]]:
        if not self._path.exists():
            return None
        try:
            with open(self._path, "r", encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, ValueError) as exc:
            raise OrderStoreError(f"Cannot read settings file: {exc}", str(self._path), exc) from exc

    def _write(self, data: Dict[str, Any]) -> None:
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except (OSError, TypeError, ValueError) as exc:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError as cleanup_exc:
                logger.warning("Store: could not remove %s: %s", tmp_path, cleanup_exc)
            raise OrderStoreError(f"Cannot write settings file: {exc}", str(self._path), exc) from exc


class MemoryBackend:
    """In-process settings store; every load and save works on a deep copy."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Optional[Dict[str, Any]] = deepcopy(initial)
        self.save_count = 0

    @property
    def data(self) -> Optional[Dict[str, Any]]:
        return deepcopy(self._data)

    async def load_data(self) -> Optional[Dict[str, Any]]:
        return deepcopy(self._data)

    async def save_data(self, data: Dict[str, Any]) -> None:
        self._data = deepcopy(data)
        self.save_count += 1


class OrderStore:
    """Load and save the order document through a :class:`StorageBackend`.

    Parameters
    ----------
    backend
        Host settings store.
    namespace_key
        Top-level key the folder orders are nested under.
    reserved_keys
        Host-owned top-level keys. They are carried through every save and
        never treated as legacy folder entries.

    Notes
    -----
    Concurrent saves are excluded by running every call inside the
    :class:`~manual_sorting.core.queue.OperationQueue`; the store itself does
    no locking.
    """

    def __init__(
        self,
        backend: StorageBackend,
        namespace_key: str = DEFAULT_NAMESPACE_KEY,
        reserved_keys: Iterable[str] = (),
    ) -> None:
        self._backend = backend
        self._namespace_key = namespace_key
        self._reserved_keys = frozenset(reserved_keys) | {namespace_key}
        self._preserved: Dict[str, Any] = {}

    @property
    def namespace_key(self) -> str:
        return self._namespace_key

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def load(self, strict: bool = False) -> OrderDocument:
        """Return the persisted document, or the default one.

        Malformed data is logged and replaced by the default document. A
        backend that cannot be read is handled the same way unless *strict*
        is set, in which case :class:`OrderStoreError` is raised so that a
        read-modify-write caller aborts instead of overwriting the saved
        order with an empty one.
        """
        try:
            raw = await self._backend.load_data()
        except (OrderStoreError, OSError, ValueError) as exc:
            if strict:
                logger.error("Store FAIL: load unreadable: %s", exc)
                if isinstance(exc, OrderStoreError):
                    raise
                raise OrderStoreError(f"Cannot load order: {exc}", cause=exc) from exc
            logger.error("Store FAIL: load unreadable, using default order: %s", exc)
            return default_document()

        if raw is None:
            return default_document()
        if not isinstance(raw, dict):
            logger.error("Store FAIL: load expected a mapping, got %s; using default order", type(raw).__name__)
            return default_document()

        data, migrated = self._migrate_legacy(raw)
        self._preserved = {k: v for k, v in data.items() if k != self._namespace_key}

        namespace = data.get(self._namespace_key)
        if namespace is None:
            return default_document()
        if not isinstance(namespace, dict):
            logger.error("Store FAIL: '%s' is not a mapping; using default order", self._namespace_key)
            return default_document()

        doc = self._sanitize(namespace)
        if migrated:
            logger.info("Store: migrated legacy flat order (%d folders)", len(doc))
            try:
                await self.save(doc)
            except (OrderStoreError, OSError, ValueError) as exc:
                logger.error("Store FAIL: could not persist migrated order: %s", exc)
        return doc

    async def save(self, doc: OrderDocument) -> None:
        payload = dict(self._preserved)
        payload[self._namespace_key] = copy_document(doc)
        await self._backend.save_data(payload)
        logger.debug("Store: saved %d folders", len(doc))

    async def reset(self) -> OrderDocument:
        """Persist and return the default document."""
        doc = default_document()
        await self.save(doc)
        logger.info("Store: order reset to default")
        return doc

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _migrate_legacy(self, raw: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        """Relocate top-level folder entries under the namespace key.

        Returns the (possibly new) raw mapping and whether anything moved.
        Entries already present under the namespace win over flat ones.
        """
        flat = {
            key: value
            for key, value in raw.items()
            if key not in self._reserved_keys and isinstance(value, list)
        }
        if not flat:
            return raw, False

        existing = raw.get(self._namespace_key)
        nested: Dict[str, Any] = dict(existing) if isinstance(existing, dict) else {}
        for key, value in flat.items():
            nested.setdefault(key, value)

        data = {k: v for k, v in raw.items() if k not in flat}
        data[self._namespace_key] = nested
        return data, True

    @staticmethod
    def _sanitize(namespace: Dict[Any, Any]) -> OrderDocument:
        doc: OrderDocument = {}
        for folder, children in namespace.items():
            if not isinstance(folder, str) or not isinstance(children, list):
                logger.warning("Store: dropping malformed entry for %r", folder)
                continue
            key = normalize_path(folder)
            items = [normalize_path(c) for c in children if isinstance(c, str)]
            if len(items) != len(children):
                logger.warning("Store: dropped non-string children under %r", folder)
            doc[key] = unique_paths(doc.get(key, []) + items)
        doc.setdefault(ROOT, [])
        return doc
