"""Test configuration and fixtures for the manual sorting core.

This module provides shared fakes for the host collaborators (tree host and
render surface) and isolates every test from the user's configuration
directory. All test files should use the fixtures defined here for
consistency.
"""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from manual_sorting.config import ConfigManager
from manual_sorting.core.models import EntryKind, TreeEntry
from manual_sorting.core.paths import ROOT, parent_path, rebase_path
from manual_sorting.core.store import MemoryBackend

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


class FakeTreeHost:
    """In-memory host tree.

    ``layout`` maps every folder to its children in natural order; a child
    is a folder iff it is itself a key of the layout. Helpers simulate edits
    made by agents outside the order manager.
    """

    def __init__(self, layout):
        self.layout = {folder: list(children) for folder, children in layout.items()}
        self.layout.setdefault(ROOT, [])

    def enumerate_sorted_children(self, folder_path):
        return [
            TreeEntry(path, EntryKind.FOLDER if path in self.layout else EntryKind.FILE)
            for path in self.layout.get(folder_path, [])
        ]

    def is_folder(self, path):
        return path in self.layout

    def add(self, path, folder=False):
        self.layout[parent_path(path)].append(path)
        if folder:
            self.layout[path] = []

    def remove(self, path):
        parent = parent_path(path)
        self.layout[parent] = [p for p in self.layout[parent] if p != path]
        for key in [k for k in self.layout if k == path or k.startswith(path + "/")]:
            del self.layout[key]

    def rename(self, old, new):
        old_parent, new_parent = parent_path(old), parent_path(new)
        if old_parent != new_parent:
            self.layout[old_parent] = [p for p in self.layout[old_parent] if p != old]
            self.layout[new_parent].append(old)
        self.layout = {
            rebase_path(key, old, new): [rebase_path(p, old, new) for p in children]
            for key, children in self.layout.items()
        }


@dataclass(frozen=True)
class FakeHandle:
    path: str


class FakeSurface:
    """Rendered folder container; reordering resets scroll like a real widget."""

    def __init__(self, paths, scroll=120):
        self.items = [(path, FakeHandle(path)) for path in paths]
        self.scroll = scroll
        self.reorder_calls = 0

    def rendered_items(self):
        return list(self.items)

    def reorder(self, handles):
        self.reorder_calls += 1
        self.scroll = 0
        self.items = [(handle.path, handle) for handle in handles]

    def get_scroll_position(self):
        return self.scroll

    def set_scroll_position(self, value):
        self.scroll = value

    def paths(self):
        return [path for path, _handle in self.items]


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path, monkeypatch):
    """Redirect user config overrides to a temp directory."""
    config_dir = tmp_path / "user_config"
    monkeypatch.setenv("MANUAL_SORTING_CONFIG_DIR", str(config_dir))
    ConfigManager.reset_instance()
    yield config_dir
    ConfigManager.reset_instance()


@pytest.fixture
def sample_layout():
    return {
        "/": ["a.md", "b.md", "folder1"],
        "folder1": ["folder1/c.md"],
    }


@pytest.fixture
def tree_host(sample_layout):
    return FakeTreeHost(sample_layout)


@pytest.fixture
def make_tree_host():
    return FakeTreeHost


@pytest.fixture
def make_surface():
    return FakeSurface


@pytest.fixture
def memory_backend():
    return MemoryBackend()
