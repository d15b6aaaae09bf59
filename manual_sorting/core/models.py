from __future__ import annotations

"""Shared data structures used across the manual sorting core.

This module exposes the order document type, the tagged tree entry returned
by host collaborators and a few pure helpers over order documents. It is
intentionally free of UI / I/O code so that the contained objects can be
reused in any context (unit-tests, host adapters, services).
"""

from copy import deepcopy
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List

from .paths import ROOT, normalize_path

__all__ = [
    "OrderDocument",
    "EntryKind",
    "TreeEntry",
    "default_document",
    "copy_document",
    "unique_paths",
    "flatten_paths",
]

# folder path -> ordered child paths
OrderDocument = Dict[str, List[str]]


class EntryKind(Enum):
    FILE = "file"
    FOLDER = "folder"


@dataclass(frozen=True)
class TreeEntry:
    """One child of a folder as reported by the host tree.

    Attributes
    ----------
    path
        Document-form path of the entry (see :mod:`manual_sorting.core.paths`).
    kind
        Whether the entry is a file or a folder. The core never infers this
        from the shape of host objects.
    """

    path: str
    kind: EntryKind

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", normalize_path(self.path))

    @property
    def is_folder(self) -> bool:
        return self.kind is EntryKind.FOLDER

    @classmethod
    def file(cls, path: str) -> "TreeEntry":
        return cls(path, EntryKind.FILE)

    @classmethod
    def folder(cls, path: str) -> "TreeEntry":
        return cls(path, EntryKind.FOLDER)


def default_document() -> OrderDocument:
    """Return a fresh empty document: only the root, with no children."""
    return {ROOT: []}


def copy_document(doc: OrderDocument) -> OrderDocument:
    return deepcopy(doc)


def unique_paths(paths: Iterable[str]) -> List[str]:
    """Drop repeated paths, keeping the first occurrence of each."""
    seen = set()
    result: List[str] = []
    for path in paths:
        if path in seen:
            continue
        seen.add(path)
        result.append(path)
    return result


def flatten_paths(doc: OrderDocument, folder: str = ROOT) -> List[str]:
    """Return every tracked path below *folder* in display order.

    The walk is pre-order: a folder is listed before its own children, which
    are only visited when the folder is itself a tracked key.
    """
    result: List[str] = []
    stack = [iter(doc.get(folder, []))]
    visited = {folder}
    while stack:
        item = next(stack[-1], None)
        if item is None:
            stack.pop()
            continue
        result.append(item)
        if item in doc and item not in visited:
            visited.add(item)
            stack.append(iter(doc[item]))
    return result
