from __future__ import annotations

"""Path helpers for order documents.

Paths are slash-delimited and relative to the tree root, without a leading
slash (``"folder1/c.md"``). The root itself is spelled ``"/"``. These helpers
are side-effect-free and shared by every layer of the package.
"""

from typing import Optional

__all__ = [
    "ROOT",
    "normalize_path",
    "parent_path",
    "base_name",
    "join_path",
    "is_descendant",
    "rebase_path",
]

ROOT = "/"


def normalize_path(path: Optional[str]) -> str:
    """Return *path* in canonical document form.

    Leading and trailing slashes are stripped and repeated separators are
    collapsed; an empty result maps to the root.

    >>> normalize_path("/folder1/c.md")
    'folder1/c.md'
    >>> normalize_path("")
    '/'
    """
    if not path:
        return ROOT
    parts = [p for p in str(path).replace("\\", "/").split("/") if p]
    if not parts:
        return ROOT
    return "/".join(parts)


def parent_path(path: str) -> str:
    """Return the folder path containing *path* (``"/"`` for top-level items)."""
    path = normalize_path(path)
    if path == ROOT:
        return ROOT
    head, sep, _tail = path.rpartition("/")
    return head if sep else ROOT


def base_name(path: str) -> str:
    path = normalize_path(path)
    if path == ROOT:
        return ""
    return path.rpartition("/")[2]


def join_path(folder: str, name: str) -> str:
    folder = normalize_path(folder)
    if folder == ROOT:
        return normalize_path(name)
    return normalize_path(f"{folder}/{name}")


def is_descendant(path: str, ancestor: str) -> bool:
    """True if *path* lies strictly below *ancestor* (segment aware)."""
    path = normalize_path(path)
    ancestor = normalize_path(ancestor)
    if ancestor == ROOT:
        return path != ROOT
    return path.startswith(ancestor + "/")


def rebase_path(path: str, old_prefix: str, new_prefix: str) -> str:
    """Substitute *old_prefix* with *new_prefix* at the head of *path*.

    Only whole segments match, so renaming ``a`` never touches ``ab/x.md``.
    Paths outside *old_prefix* are returned unchanged.
    """
    if path == old_prefix:
        return new_prefix
    if old_prefix != ROOT and path.startswith(old_prefix + "/"):
        return new_prefix + path[len(old_prefix):]
    return path
