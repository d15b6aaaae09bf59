from __future__ import annotations

"""Host-independent edit events.

Host adapters translate their own hooks (file-manager callbacks, watcher
notifications, drag-and-drop completion) into :class:`EditEvent` objects and
publish them on an :class:`EditEventBus`. The order manager subscribes to the
bus; it never reaches into host internals.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Union

from .paths import normalize_path

__all__ = ["EditEventKind", "EditEvent", "EditEventBus", "EditEventListener"]

logger = logging.getLogger(__name__)


class EditEventKind(Enum):
    CREATE = "create"
    DELETE = "delete"
    RENAME = "rename"
    MOVE = "move"


@dataclass(frozen=True)
class EditEvent:
    """A single tree edit reported by the host.

    Attributes
    ----------
    kind
        What happened.
    path
        The affected path (the old path for renames and moves).
    new_path
        Destination path for renames and moves.
    anchor
        Move only: sibling path the item was dropped in front of, or an index.
    """

    kind: EditEventKind
    path: str
    new_path: Optional[str] = None
    anchor: Union[str, int, None] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", normalize_path(self.path))
        if self.new_path is not None:
            object.__setattr__(self, "new_path", normalize_path(self.new_path))
        if self.kind in (EditEventKind.RENAME, EditEventKind.MOVE) and self.new_path is None:
            raise ValueError(f"{self.kind.value} event requires new_path")


EditEventListener = Callable[[EditEvent], object]


class EditEventBus:
    """Synchronous fan-out of edit events to subscribed listeners.

    A listener that raises is logged and skipped; delivery to the remaining
    listeners continues.
    """

    def __init__(self) -> None:
        self._listeners: List[EditEventListener] = []

    def subscribe(self, listener: EditEventListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: EditEventListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            logger.debug("Events: unsubscribe of unknown listener %r", listener)

    def publish(self, event: EditEvent) -> None:
        logger.debug("Events: publish %s %s", event.kind.value, event.path)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Events: listener %r failed on %s", listener, event)

    # -------------------------------------------------------------------------
    # Convenience emitters
    # -------------------------------------------------------------------------

    def emit_create(self, path: str) -> None:
        self.publish(EditEvent(EditEventKind.CREATE, path))

    def emit_delete(self, path: str) -> None:
        self.publish(EditEvent(EditEventKind.DELETE, path))

    def emit_rename(self, old_path: str, new_path: str) -> None:
        self.publish(EditEvent(EditEventKind.RENAME, old_path, new_path))

    def emit_move(self, old_path: str, new_path: str, anchor: Union[str, int, None] = None) -> None:
        self.publish(EditEvent(EditEventKind.MOVE, old_path, new_path, anchor))
