"""File I/O helpers."""
from __future__ import annotations

from .core import copy_path, ensure_directory, ensure_parent_dir, write_bytes, write_text
from .yaml import read_yaml

__all__ = [
    "copy_path",
    "ensure_directory",
    "ensure_parent_dir",
    "write_bytes",
    "write_text",
    "read_yaml",
]
