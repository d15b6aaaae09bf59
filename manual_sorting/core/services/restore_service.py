from __future__ import annotations

"""Project the persisted order onto a rendered folder.

The host renders folder children in its natural order, possibly in several
batches. Once a folder's children are all rendered, the host hands the
container to :class:`RestoreProjector`, which puts the rendered handles in
pinned order through the container's own reorder primitive.
"""

import logging
from typing import Any, Dict, List, Mapping, Protocol, Sequence, Tuple

from manual_sorting.core.paths import normalize_path

__all__ = ["RenderSurface", "RestoreProjector"]

logger = logging.getLogger(__name__)


class RenderSurface(Protocol):
    """Container of rendered child handles, keyed by path."""

    def rendered_items(self) -> List[Tuple[str, Any]]:
        """Return ``(path, handle)`` pairs in current display order."""
        ...

    def reorder(self, handles: Sequence[Any]) -> None:
        """Display exactly *handles*, in this order."""
        ...

    def get_scroll_position(self) -> Any:
        ...

    def set_scroll_position(self, value: Any) -> None:
        ...


class RestoreProjector:
    """Reorder rendered handles to match a folder's persisted sequence."""

    def restore_order(
        self,
        surface: RenderSurface,
        folder_path: str,
        doc: Mapping[str, Sequence[str]],
    ) -> List[str]:
        """Apply the saved order of *folder_path* to *surface*.

        Handles whose path is in the saved sequence come first, in saved
        order; any other handle follows in its previous relative order.
        Nothing is dropped. The surface's scroll position is captured before
        the reorder and put back afterwards.

        Returns the applied path order, or an empty list when the folder has
        no saved sequence (the surface is then left untouched).
        """
        folder = normalize_path(folder_path)
        saved = doc.get(folder)
        if saved is None:
            logger.debug("Restore: no saved order for %s", folder)
            return []

        items = list(surface.rendered_items())
        handles: Dict[str, Any] = {}
        duplicates: List[Any] = []
        for path, handle in items:
            key = normalize_path(path)
            if key in handles:
                duplicates.append(handle)
            else:
                handles[key] = handle

        ordered: List[str] = [path for path in dict.fromkeys(saved) if path in handles]
        pinned = set(ordered)
        ordered.extend(path for path in handles if path not in pinned)

        scroll = surface.get_scroll_position()
        try:
            surface.reorder([handles[path] for path in ordered] + duplicates)
        finally:
            surface.set_scroll_position(scroll)

        logger.info("Restore: order restored for %s (%d items)", folder, len(ordered))
        return ordered
