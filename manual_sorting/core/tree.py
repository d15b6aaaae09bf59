from __future__ import annotations

"""Read-only view of the host tree.

The host owns files and folders and decides their natural order; the core only
asks it two questions through :class:`TreeHost`. :class:`TreeWalker` turns
those answers into per-folder child listings.
"""

import logging
from typing import Dict, Iterable, List, Protocol

from .models import EntryKind, OrderDocument, TreeEntry
from .paths import ROOT, normalize_path

__all__ = ["TreeHost", "TreeWalker"]

logger = logging.getLogger(__name__)


class TreeHost(Protocol):
    """Collaborator interface implemented by host adapters.

    Reconciliation calls these methods from a worker thread unless the
    ordering option ``walk_in_thread`` is off.
    """

    def enumerate_sorted_children(self, folder_path: str) -> Iterable[TreeEntry]:
        """Return the children of *folder_path* in the host's natural order."""
        ...

    def is_folder(self, path: str) -> bool:
        ...


class TreeWalker:
    """Enumerate folders of a :class:`TreeHost`.

    The walk is pre-order and produces exactly one entry per folder, root
    first. An explicit stack is used so deep trees do not hit the recursion
    limit.
    """

    def __init__(self, host: TreeHost) -> None:
        self._host = host

    @property
    def host(self) -> TreeHost:
        return self._host

    def children(self, folder_path: str) -> List[TreeEntry]:
        return list(self._host.enumerate_sorted_children(normalize_path(folder_path)))

    def is_folder(self, path: str) -> bool:
        path = normalize_path(path)
        return path == ROOT or bool(self._host.is_folder(path))

    def walk(self) -> OrderDocument:
        """Return ``{folder: [child paths in natural order]}`` for the whole tree."""
        current: Dict[str, List[str]] = {}
        stack = [ROOT]
        while stack:
            folder = stack.pop()
            if folder in current:
                logger.warning("Tree: folder %s listed twice, skipping", folder)
                continue
            entries = self.children(folder)
            current[folder] = [entry.path for entry in entries]
            # reversed so the first child folder is visited next (pre-order)
            stack.extend(
                entry.path for entry in reversed(entries) if entry.kind is EntryKind.FOLDER
            )
        return current
