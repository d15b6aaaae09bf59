from __future__ import annotations

"""Reconciliation of pinned order with the live tree.

The host tree is the ground truth for *membership*: which paths are children
of which folder right now. The saved document is the ground truth for
*order*. :class:`OrderReconciler` merges both:

- saved paths that still exist keep their saved relative order,
- paths the saved document does not know yet are appended after them, in the
  host's natural order,
- stale paths and folders that no longer exist are dropped.

The merge is idempotent and never invents or omits a path, so it can run after
every mutation to repair drift caused by batched or missed edit events.
"""

import logging
from typing import Mapping, Sequence

from manual_sorting.core.models import OrderDocument, unique_paths
from manual_sorting.core.tree import TreeWalker

__all__ = ["OrderReconciler", "match_saved_order"]

logger = logging.getLogger(__name__)


def match_saved_order(
    current: Mapping[str, Sequence[str]],
    saved: Mapping[str, Sequence[str]],
) -> OrderDocument:
    """Merge *saved* order into *current* membership.

    Parameters
    ----------
    current
        ``{folder: children}`` as enumerated from the host right now.
    saved
        Previously persisted document.

    Returns
    -------
    OrderDocument
        One entry per folder of *current*. For each folder the children are
        exactly the (deduplicated) children of *current*, ordered as
        ``kept + added``.
    """
    result: OrderDocument = {}
    for folder, children in current.items():
        members = unique_paths(children)
        previous = saved.get(folder)
        if previous is None:
            result[folder] = members
            continue
        present = set(members)
        known = set(previous)
        kept = [path for path in previous if path in present]
        added = [path for path in members if path not in known]
        result[folder] = unique_paths(kept + added)
    return result


class OrderReconciler:
    """Compute the merged order for the tree behind a :class:`TreeWalker`."""

    def __init__(self, walker: TreeWalker) -> None:
        self._walker = walker

    def get_current_order(self) -> OrderDocument:
        """Natural-order listing of every folder, walked from the root."""
        return self._walker.walk()

    @staticmethod
    def match_saved_order(
        current: Mapping[str, Sequence[str]],
        saved: Mapping[str, Sequence[str]],
    ) -> OrderDocument:
        return match_saved_order(current, saved)

    def reconcile(self, saved: Mapping[str, Sequence[str]]) -> OrderDocument:
        current = self.get_current_order()
        merged = match_saved_order(current, saved)
        dropped = [folder for folder in saved if folder not in merged]
        if dropped:
            logger.debug("Reconcile: dropped %d untracked folders: %s", len(dropped), dropped)
        logger.debug("Reconcile: %d folders in merged order", len(merged))
        return merged
