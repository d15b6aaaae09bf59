from __future__ import annotations

"""Service layer for edits on the order document.

This module keeps the persisted order consistent with tree edits reported by
the host (move, rename, create, delete). It is UI-agnostic and testable in
isolation.

Scope and guarantees:
- Operates purely in-memory on an OrderDocument, no file I/O nor host calls.
- Expected invalid operations (untracked parent, duplicate destination)
  return OperationResult(success=False, ...) with clear messaging, never raise.
- A failed operation leaves the document exactly as it was.
- Folder renames and moves rewrite every descendant key and reference in one
  step, so the document is never observed half-renamed.

Callers load the document, apply one operation, persist it and schedule a
reconciliation pass; see :class:`manual_sorting.core.order_manager.OrderManager`.

Examples
--------
Basic usage:

    service = OrderMutationService()
    doc = {"/": ["a.md", "folder1"], "folder1": ["folder1/c.md"]}
    result = service.move_file(doc, "a.md", "folder1/a.md", "folder1/c.md")
    # doc == {"/": ["folder1"], "folder1": ["folder1/a.md", "folder1/c.md"]}

"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Optional, Union

from manual_sorting.core.exceptions import (
    DuplicateDestinationError,
    MissingParentError,
    OrderingError,
)
from manual_sorting.core.models import OrderDocument, unique_paths
from manual_sorting.core.paths import ROOT, is_descendant, normalize_path, parent_path, rebase_path

__all__ = ["OperationResult", "OrderMutationService", "Anchor"]

logger = logging.getLogger(__name__)

# sibling path the moved item lands in front of, or a target index
Anchor = Union[str, int, None]


@dataclass(frozen=True)
class OperationResult:
    """Result of an order editing operation.

    Attributes
    ----------
    success
        Whether the operation changed the document as requested.
    message
        Human-readable summary suitable for logs.
    details
        Optional structured details for diagnostics or caller logic.
    """
    success: bool
    message: str
    details: Optional[Dict[str, Any]] = None


class OrderMutationService:
    """Apply move/rename/create/delete edits to an order document.

    Parameters
    ----------
    recursive_delete
        When True, deleting a tracked folder also removes the keys of every
        nested tracked folder. When False, only the folder's own key goes and
        the host is expected to report each descendant deletion.
    """

    def __init__(self, recursive_delete: bool = True) -> None:
        self._recursive_delete = recursive_delete

    @property
    def recursive_delete(self) -> bool:
        return self._recursive_delete

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def move_file(
        self,
        doc: OrderDocument,
        old_path: str,
        new_path: str,
        anchor: Anchor = None,
    ) -> OperationResult:
        """Move an item to a new position, possibly in another folder.

        ``anchor`` locates the drop slot in the destination folder:

        - a path: the sibling the item is dropped in front of (the sibling
          rendered right after the drop position),
        - an int: the index in the destination sequence,
        - None, or a path the destination does not hold: append.

        If the destination already holds ``new_path`` the move is aborted and
        *doc* is left untouched.
        """
        old = normalize_path(old_path)
        new = normalize_path(new_path)
        old_dir = parent_path(old)
        new_dir = parent_path(new)
        logger.info("Edit: move_file old=%s new=%s anchor=%r", old, new, anchor)

        try:
            self._require_parent(doc, new, new_dir)

            source: Optional[List[str]] = None
            original_index: Optional[int] = None
            if old_dir in doc:
                source = list(doc[old_dir])
                if old in source:
                    original_index = source.index(old)
                    source.remove(old)
            else:
                logger.warning("Edit: move_file source folder %s not tracked; inserting only", old_dir)

            destination = source if (source is not None and new_dir == old_dir) else list(doc[new_dir])
            if new in destination:
                raise DuplicateDestinationError(
                    f"'{new}' already exists in '{new_dir}'", new, destination=new_dir
                )
        except OrderingError as exc:
            return self._fail("move_file", exc, {"old_path": old, "new_path": new})

        anchor_value = anchor
        if isinstance(anchor, str) and normalize_path(anchor) == old and new_dir == old_dir:
            # dropped in front of itself: keep the original slot
            anchor_value = original_index
        self._insert(destination, new, anchor_value)

        if source is not None:
            doc[old_dir] = source
        doc[new_dir] = destination
        if old != new and old in doc:
            self._rebase_subtree(doc, old, new)

        logger.info("Edit OK: move_file %s -> %s", old, new)
        return OperationResult(True, f"Moved '{old}' to '{new}'.", {"old_path": old, "new_path": new, "folder": new_dir})

    def rename_item(self, doc: OrderDocument, old_path: str, new_path: str) -> OperationResult:
        """Rename an item, cascading to descendants when it is a tracked folder.

        The entry keeps its slot in its parent's sequence. A rename whose new
        parent differs from the old one is really a move: the entry leaves the
        old parent and is appended to the new one.
        """
        old = normalize_path(old_path)
        new = normalize_path(new_path)
        if old == new:
            return OperationResult(False, "Rename is a no-op (same path).", {"path": old})
        logger.info("Edit: rename_item old=%s new=%s", old, new)

        old_dir = parent_path(old)
        new_dir = parent_path(new)
        try:
            self._require_parent(doc, old, old_dir)
            if new_dir != old_dir:
                self._require_parent(doc, new, new_dir)
        except MissingParentError as exc:
            return self._fail("rename_item", exc, {"old_path": old, "new_path": new})

        if new_dir != old_dir:
            doc[old_dir] = [p for p in doc[old_dir] if p != old]
            if new not in doc[new_dir]:
                doc[new_dir] = doc[new_dir] + [new]

        is_folder = old in doc
        if is_folder:
            logger.info("Edit: rename_item %s is a tracked folder, renaming its children as well", old)
        # rewrites the parent slot too when the parent is unchanged
        self._rebase_subtree(doc, old, new)

        logger.info("Edit OK: rename_item %s -> %s", old, new)
        return OperationResult(True, f"Renamed '{old}' to '{new}'.", {"old_path": old, "new_path": new, "folder": is_folder})

    def delete_item(self, doc: OrderDocument, path: str) -> OperationResult:
        """Remove an item from its parent; drop its key if it is a tracked folder."""
        target = normalize_path(path)
        if target == ROOT:
            logger.warning("Edit FAIL: delete_item refused for the root")
            return OperationResult(False, "The root folder cannot be deleted.", {"path": target})
        logger.info("Edit: delete_item path=%s", target)

        parent = parent_path(target)
        try:
            self._require_parent(doc, target, parent)
        except MissingParentError as exc:
            return self._fail("delete_item", exc, {"path": target})

        doc[parent] = [p for p in doc[parent] if p != target]

        purged: List[str] = []
        if target in doc:
            del doc[target]
            purged.append(target)
            if self._recursive_delete:
                nested = [key for key in doc if is_descendant(key, target)]
                for key in nested:
                    del doc[key]
                purged.extend(nested)

        logger.info("Edit OK: delete_item %s purged_keys=%d", target, len(purged))
        return OperationResult(True, f"Deleted '{target}'.", {"path": target, "purged": purged})

    def create_item(self, doc: OrderDocument, path: str, is_folder: bool = False) -> OperationResult:
        """Append a new item to its parent; track it when it is a folder."""
        target = normalize_path(path)
        parent = parent_path(target)
        logger.info("Edit: create_item path=%s folder=%s", target, is_folder)
        try:
            self._require_parent(doc, target, parent)
        except MissingParentError as exc:
            return self._fail("create_item", exc, {"path": target})

        if target not in doc[parent]:
            doc[parent] = doc[parent] + [target]
        if is_folder:
            doc.setdefault(target, [])

        logger.info("Edit OK: create_item %s", target)
        return OperationResult(True, f"Created '{target}'.", {"path": target, "folder": is_folder})

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_parent(doc: OrderDocument, path: str, parent: str) -> None:
        if parent not in doc:
            raise MissingParentError(f"folder '{parent}' is not tracked", path, parent=parent)

    @staticmethod
    def _insert(sequence: List[str], path: str, anchor: Anchor) -> None:
        if isinstance(anchor, bool) or anchor is None:
            sequence.append(path)
        elif isinstance(anchor, int):
            sequence.insert(max(0, min(anchor, len(sequence))), path)
        else:
            anchor_path = normalize_path(anchor)
            if anchor_path in sequence:
                sequence.insert(sequence.index(anchor_path), path)
            else:
                logger.debug("Edit: anchor %s not in destination, appending %s", anchor_path, path)
                sequence.append(path)

    @staticmethod
    def _rebase_subtree(doc: OrderDocument, old: str, new: str) -> None:
        """Rewrite every key and reference under *old* to live under *new*."""
        rebased: OrderDocument = {}
        for key, children in doc.items():
            new_key = rebase_path(key, old, new)
            new_children = [rebase_path(child, old, new) for child in children]
            rebased[new_key] = unique_paths(rebased.get(new_key, []) + new_children)
        doc.clear()
        doc.update(rebased)

    @staticmethod
    def _fail(operation: str, exc: OrderingError, details: Dict[str, Any]) -> OperationResult:
        logger.warning("Edit FAIL: %s %s", operation, exc)
        return OperationResult(False, str(exc), dict(details, error=type(exc).__name__))
