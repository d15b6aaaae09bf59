from __future__ import annotations

"""Order manager: the single owner of the order document.

The OrderManager wires the store, tree walker, reconciler, mutation service
and restore projector behind one :class:`OperationQueue`. Every trigger
(edit events, render-complete restores, user reset, re-enabling manual
sorting) becomes a task on that queue; nothing else reads-modifies-writes
the document. Mutual exclusion is therefore structural and no lock is used.

Every mutation is followed by a reconciliation task, because one edit event
may not capture the full effect of a batched tree change.

Public methods return a shielded :class:`asyncio.Future` for the enqueued
work, so callers may await it or fire and forget. They must be called on the
event loop thread.

Only initialisation falls back to the default document when the settings
store cannot be read. Every other task aborts on a failed read, so a
transient I/O error never replaces the pinned order with an empty one.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from manual_sorting.config import ConfigManager

from .events import EditEvent, EditEventBus, EditEventKind
from .models import OrderDocument, flatten_paths
from .queue import OperationQueue
from .services.mutation_service import Anchor, OperationResult, OrderMutationService
from .services.reconciler import OrderReconciler
from .services.restore_service import RenderSurface, RestoreProjector
from .store import DEFAULT_NAMESPACE_KEY, OrderStore, StorageBackend
from .tree import TreeHost, TreeWalker

__all__ = ["OrderManager"]

logger = logging.getLogger(__name__)


class OrderManager:
    """Serialize every order operation for one host tree.

    Parameters
    ----------
    host
        Read-only view of the host tree (natural order and folder checks).
    backend
        Host settings store the order document is persisted in.
    config
        Ordering section of the configuration. Defaults to
        ``ConfigManager().get_ordering_config()``.
    """

    def __init__(
        self,
        host: TreeHost,
        backend: StorageBackend,
        config: Optional[Dict[str, Any]] = None,
    ) -> None:
        cfg = ConfigManager().get_ordering_config() if config is None else config
        queue_cfg = cfg.get("queue") or {}

        self._walker = TreeWalker(host)
        self._store = OrderStore(
            backend,
            namespace_key=cfg.get("namespace_key") or DEFAULT_NAMESPACE_KEY,
            reserved_keys=cfg.get("reserved_keys") or (),
        )
        self._reconciler = OrderReconciler(self._walker)
        self._mutations = OrderMutationService(recursive_delete=bool(cfg.get("recursive_delete", True)))
        self._projector = RestoreProjector()
        self._queue = OperationQueue(slow_task_warning_seconds=queue_cfg.get("slow_task_warning_seconds"))
        self._enabled = bool(cfg.get("enabled_on_start", True))
        self._walk_in_thread = bool(cfg.get("walk_in_thread", True))
        self._logger = logging.getLogger(f"{__name__}.OrderManager")

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def queue(self) -> OperationQueue:
        return self._queue

    @property
    def store(self) -> OrderStore:
        return self._store

    @property
    def reconciler(self) -> OrderReconciler:
        return self._reconciler

    async def drain(self) -> None:
        """Wait for every queued task, including follow-up reconciliation."""
        await self._queue.drain()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def init_order(self) -> asyncio.Future:
        """Merge the saved order with the current tree and persist it."""
        return self._queue.enqueue(lambda: self._reconcile(strict=False), name="init_order")

    def update_order(self) -> asyncio.Future:
        return self._queue.enqueue(self._reconcile, name="update_order")

    def reset_order(self) -> asyncio.Future:
        """Forget every pinned position and fall back to natural order."""

        async def _reset() -> OrderDocument:
            await self._store.reset()
            return await self._reconcile()

        return self._queue.enqueue(_reset, name="reset_order")

    def enable(self) -> Optional[asyncio.Future]:
        """Turn manual sorting back on and re-initialise the order.

        Returns None when manual sorting was already enabled.
        """
        if self._enabled:
            return None
        self._enabled = True
        self._logger.info("Manual sorting enabled")
        return self.init_order()

    def disable(self) -> None:
        """Stop reacting to edit events and restores (host switched sort order)."""
        if self._enabled:
            self._enabled = False
            self._logger.info("Manual sorting disabled")

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def move_file(self, old_path: str, new_path: str, anchor: Anchor = None) -> asyncio.Future:
        return self._mutate(
            "move_file",
            lambda doc: self._mutations.move_file(doc, old_path, new_path, anchor),
        )

    def rename_item(self, old_path: str, new_path: str) -> asyncio.Future:
        return self._mutate(
            "rename_item",
            lambda doc: self._mutations.rename_item(doc, old_path, new_path),
        )

    def delete_item(self, path: str) -> asyncio.Future:
        return self._mutate("delete_item", lambda doc: self._mutations.delete_item(doc, path))

    def create_item(self, path: str, is_folder: Optional[bool] = None) -> asyncio.Future:
        """Track a newly created item.

        When *is_folder* is None the host is asked at execution time.
        """

        def _apply(doc: OrderDocument) -> OperationResult:
            folder = self._walker.is_folder(path) if is_folder is None else is_folder
            return self._mutations.create_item(doc, path, is_folder=folder)

        return self._mutate("create_item", _apply)

    # -------------------------------------------------------------------------
    # Projection and queries
    # -------------------------------------------------------------------------

    def restore_order(self, surface: RenderSurface, folder_path: str) -> asyncio.Future:
        """Reorder a fully rendered folder to match the persisted order."""

        async def _restore() -> List[str]:
            if not self._enabled:
                return []
            doc = await self._store.load(strict=True)
            return self._projector.restore_order(surface, folder_path, doc)

        return self._queue.enqueue(_restore, name="restore_order")

    def get_flatten_paths(self) -> asyncio.Future:
        """Every tracked path in display order (pre-order)."""

        async def _flatten() -> List[str]:
            return flatten_paths(await self._store.load(strict=True))

        return self._queue.enqueue(_flatten, name="get_flatten_paths")

    # -------------------------------------------------------------------------
    # Event feed
    # -------------------------------------------------------------------------

    def attach(self, bus: EditEventBus) -> None:
        bus.subscribe(self.handle_event)

    def detach(self, bus: EditEventBus) -> None:
        bus.unsubscribe(self.handle_event)

    def handle_event(self, event: EditEvent) -> Optional[asyncio.Future]:
        """Translate one edit event into a queued mutation.

        Ignored (returns None) while manual sorting is disabled.
        """
        if not self._enabled:
            self._logger.debug("Ignoring %s event for %s: manual sorting disabled", event.kind.value, event.path)
            return None
        if event.kind is EditEventKind.CREATE:
            return self.create_item(event.path)
        if event.kind is EditEventKind.DELETE:
            return self.delete_item(event.path)
        if event.kind is EditEventKind.RENAME:
            return self.rename_item(event.path, event.new_path)
        return self.move_file(event.path, event.new_path, event.anchor)

    # -------------------------------------------------------------------------
    # Queue tasks
    # -------------------------------------------------------------------------

    def _mutate(self, name: str, apply: Callable[[OrderDocument], OperationResult]) -> asyncio.Future:
        async def _task() -> OperationResult:
            try:
                doc = await self._store.load(strict=True)
                result = apply(doc)
                if result.success:
                    await self._store.save(doc)
                return result
            finally:
                self._queue.enqueue(self._reconcile, name=f"update_order<{name}>")

        return self._queue.enqueue(_task, name=name)

    async def _reconcile(self, strict: bool = True) -> OrderDocument:
        saved = await self._store.load(strict=strict)
        if self._walk_in_thread:
            # the walk enumerates the host tree, which may block on disk
            merged = await asyncio.to_thread(self._reconciler.reconcile, saved)
        else:
            merged = self._reconciler.reconcile(saved)
        await self._store.save(merged)
        self._logger.info("Order updated: %d folders tracked", len(merged))
        return merged
