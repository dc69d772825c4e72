"""YAML I/O utilities."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def read_yaml(path: Path, default: Any = None, raise_on_error: bool = False) -> Any:
    """Read a YAML (or JSON) document.

    Returns ``default`` when the file is missing, empty or invalid, unless
    ``raise_on_error`` is set, in which case read and parse errors propagate
    (an empty document still yields ``default``).
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError):
        if raise_on_error:
            raise
        return default
    return data if data is not None else default


__all__ = ["read_yaml"]
