"""Packaged YAML configuration and the helpers that load it.

`ConfigManager` reads the default files from this folder and merges them with
user overrides.
"""

from .manager import ConfigManager

__all__ = [
    "ConfigManager",
]
