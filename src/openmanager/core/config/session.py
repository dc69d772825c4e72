"""Per-repository session configuration.

A repository may carry a config file in one of two fixed locations
(``openmanager/`` or ``.openmanager/``), named ``config.yml``, ``config.yaml``
or ``config.json``::

    docker:
      baseImage: node:24
      steps:
        - RUN apt-get update && apt-get install -y ripgrep
    preSessionHooks:
      - name: install-node-deps
        options:
          packageManager: pnpm

The first file found wins. No file means an empty configuration.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from openmanager.core.exceptions import ConfigError
from openmanager.core.schemas import SchemaValidationError, validate_payload
from openmanager.core.utils.io import read_yaml

logger = logging.getLogger(__name__)

CONFIG_LOCATIONS = ("openmanager", ".openmanager")
CONFIG_FILENAMES = ("config.yml", "config.yaml", "config.json")


@dataclass(frozen=True)
class DockerConfig:
    """Container build override: custom base image and extra instructions."""

    base_image: Optional[str] = None
    steps: List[str] = field(default_factory=list)

    def is_default(self) -> bool:
        return not self.base_image and not self.steps

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DockerConfig":
        return cls(
            base_image=data.get("baseImage") or None,
            steps=[str(s) for s in data.get("steps") or []],
        )


@dataclass(frozen=True)
class HookInvocation:
    """One configured pre-session hook call."""

    name: str
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HookInvocation":
        return cls(name=str(data["name"]), options=dict(data.get("options") or {}))


@dataclass(frozen=True)
class SessionConfig:
    docker: Optional[DockerConfig] = None
    pre_session_hooks: List[HookInvocation] = field(default_factory=list)
    source: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, source: Optional[Path] = None) -> "SessionConfig":
        docker_raw = data.get("docker")
        return cls(
            docker=DockerConfig.from_dict(docker_raw) if docker_raw is not None else None,
            pre_session_hooks=[HookInvocation.from_dict(h) for h in data.get("preSessionHooks") or []],
            source=source,
        )


def find_session_config_file(repo_path: Path) -> Optional[Path]:
    """Return the first existing config file for ``repo_path``, if any."""
    for location in CONFIG_LOCATIONS:
        for filename in CONFIG_FILENAMES:
            candidate = Path(repo_path) / location / filename
            if candidate.is_file():
                return candidate
    return None


def load_session_config(repo_path: Path) -> SessionConfig:
    """Load and validate the session configuration for ``repo_path``.

    Raises:
        ConfigError: If the file cannot be read, parsed, or fails validation.
    """
    config_path = find_session_config_file(repo_path)
    if config_path is None:
        logger.debug("no session config under %s", repo_path)
        return SessionConfig()

    try:
        raw = read_yaml(config_path, default={}, raise_on_error=True)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(
            f"Failed to read session configuration at {config_path}: {exc}",
            context={"path": str(config_path)},
        ) from exc

    try:
        validate_payload(raw, "session-config")
    except SchemaValidationError as exc:
        raise ConfigError(
            f"Invalid session configuration at {config_path}: {'; '.join(exc.errors)}",
            context={"path": str(config_path), "errors": exc.errors},
        ) from exc

    logger.info("loaded session config from %s", config_path)
    return SessionConfig.from_dict(raw, source=config_path)


__all__ = [
    "CONFIG_LOCATIONS",
    "CONFIG_FILENAMES",
    "DockerConfig",
    "HookInvocation",
    "SessionConfig",
    "find_session_config_file",
    "load_session_config",
]
