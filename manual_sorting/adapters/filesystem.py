from __future__ import annotations

"""Tree host backed by a directory on disk.

Natural order mirrors the usual file-explorer default: folders first, then
files, each group sorted by case-insensitive name. Entries whose name starts
with a dot are hidden.
"""

import logging
from pathlib import Path
from typing import List

from manual_sorting.core.models import EntryKind, TreeEntry
from manual_sorting.core.paths import ROOT, join_path, normalize_path

__all__ = ["FilesystemTree"]

logger = logging.getLogger(__name__)


class FilesystemTree:
    """Expose a directory as a :class:`~manual_sorting.core.tree.TreeHost`."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, path: str) -> Path:
        path = normalize_path(path)
        if path == ROOT:
            return self._root
        return self._root.joinpath(*path.split("/"))

    def enumerate_sorted_children(self, folder_path: str) -> List[TreeEntry]:
        directory = self.resolve(folder_path)
        try:
            children = [child for child in directory.iterdir() if not child.name.startswith(".")]
        except (FileNotFoundError, NotADirectoryError):
            logger.warning("Filesystem: %s is not a directory", directory)
            return []

        children.sort(key=lambda child: (not child.is_dir(), child.name.casefold(), child.name))
        return [
            TreeEntry(
                join_path(folder_path, child.name),
                EntryKind.FOLDER if child.is_dir() else EntryKind.FILE,
            )
            for child in children
        ]

    def is_folder(self, path: str) -> bool:
        return self.resolve(path).is_dir()
