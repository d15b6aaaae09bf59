"""Ready-made host adapters."""

from .filesystem import FilesystemTree

__all__ = ["FilesystemTree"]
