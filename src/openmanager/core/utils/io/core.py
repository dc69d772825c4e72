"""Core I/O utilities for OpenManager.

Directory creation, whole-file writes and recursive copies used by the
worktree manager, image cache and hooks.
"""
from __future__ import annotations

import shutil
from pathlib import Path
from typing import Union

PathLike = Union[str, Path]


def ensure_parent_dir(path: PathLike) -> None:
    """Ensure the parent directory for ``path`` exists."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def ensure_directory(path: PathLike, create: bool = True) -> Path:
    """Ensure directory exists.

    Args:
        path: Directory path to check/create
        create: If True, create directory if missing; if False, raise if missing

    Returns:
        Path: The directory path (guaranteed to exist if create=True)

    Raises:
        FileNotFoundError: If create=False and directory doesn't exist
        NotADirectoryError: If path exists but is not a directory
    """
    path = Path(path)

    if path.exists():
        if not path.is_dir():
            raise NotADirectoryError(f"Path exists but is not a directory: {path}")
        return path

    if create:
        path.mkdir(parents=True, exist_ok=True)
        return path
    raise FileNotFoundError(f"Directory does not exist: {path}")


def write_text(path: PathLike, content: str, encoding: str = "utf-8") -> Path:
    """Write ``content`` to ``path``, creating parent directories."""
    target = Path(path)
    ensure_parent_dir(target)
    target.write_text(content, encoding=encoding)
    return target


def write_bytes(path: PathLike, content: bytes) -> Path:
    """Write raw ``content`` to ``path``, creating parent directories."""
    target = Path(path)
    ensure_parent_dir(target)
    target.write_bytes(content)
    return target


def copy_path(source: PathLike, destination: PathLike) -> Path:
    """Copy a file or directory tree to ``destination``.

    Directories are merged into an existing destination; files keep their
    metadata (mode bits, mtime). Symlinks are copied as links.
    """
    src = Path(source)
    dst = Path(destination)
    ensure_parent_dir(dst)
    if src.is_dir() and not src.is_symlink():
        shutil.copytree(src, dst, symlinks=True, dirs_exist_ok=True)
    else:
        shutil.copy2(src, dst, follow_symlinks=False)
    return dst


__all__ = [
    "PathLike",
    "ensure_parent_dir",
    "ensure_directory",
    "write_text",
    "write_bytes",
    "copy_path",
]
