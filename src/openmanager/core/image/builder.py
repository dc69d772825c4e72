"""Content-addressed container image cache.

Custom images are tagged ``<namespace>/<agent>:<digest[:12]>`` where the
digest covers the literal build instructions. Identical configurations map
to the same tag across sessions and processes, so an image is built at most
once per distinct instruction list. Instructions are compared as text: two
step lists that differ only in order produce different tags.
"""
from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from openmanager.core.config import DockerConfig
from openmanager.core.exceptions import ExternalToolFailure, ImageBuildFailure
from openmanager.core.paths import ManagementPaths
from openmanager.core.utils.io import write_text
from openmanager.core.utils.subprocess import run_docker_command

from .shared import (
    DEFAULT_AGENT_ID,
    DEFAULT_BASE_IMAGE,
    IMAGE_NAMESPACE,
    AgentProfile,
    get_agent_profile,
)

logger = logging.getLogger(__name__)

DockerRunner = Callable[..., object]


def build_instructions(base_image: str, fixed_steps: Sequence[str], custom_steps: Sequence[str]) -> List[str]:
    """Return ``[FROM <base>] + fixed steps + custom steps``."""
    return [f"FROM {base_image}", *fixed_steps, *custom_steps]


def render_dockerfile(instructions: Sequence[str]) -> str:
    return "\n".join(instructions) + "\n"


def _json_list(items: Sequence[str]) -> str:
    return json.dumps(list(items), separators=(",", ":"), ensure_ascii=False)


def compute_cache_key(base_image: str, fixed_steps: Sequence[str], custom_steps: Sequence[str]) -> str:
    """SHA-256 hex digest over the literal build inputs."""
    digest = hashlib.sha256()
    digest.update(base_image.encode("utf-8"))
    digest.update(_json_list(fixed_steps).encode("utf-8"))
    digest.update(_json_list(custom_steps).encode("utf-8"))
    return digest.hexdigest()


def compute_image_tag(
    base_image: str,
    custom_steps: Sequence[str],
    *,
    agent_id: str = DEFAULT_AGENT_ID,
    fixed_steps: Optional[Sequence[str]] = None,
) -> str:
    """Deterministic image tag for a build configuration."""
    steps = list(fixed_steps) if fixed_steps is not None else list(get_agent_profile(agent_id).build_steps)
    key = compute_cache_key(base_image, steps, custom_steps)
    return f"{IMAGE_NAMESPACE}/{agent_id}:{key[:12]}"


class ImageCache:
    """Resolve (and build on demand) the image a session runs in.

    Args:
        repo_path: Repository whose ``.openmanager/cache/docker`` holds build contexts.
        agent_id: Agent flavor; selects the fixed build steps and tag name.
        runner: Callable with the :func:`run_docker_command` signature.
    """

    def __init__(
        self,
        repo_path: Path,
        *,
        agent_id: str = DEFAULT_AGENT_ID,
        runner: Optional[DockerRunner] = None,
    ) -> None:
        self.repo_path = Path(repo_path)
        self.profile: AgentProfile = get_agent_profile(agent_id)
        self.paths = ManagementPaths(self.repo_path)
        self._run = runner or run_docker_command

    @property
    def cache_root(self) -> Path:
        return self.paths.docker_cache_root

    def resolve_image(self, config: Optional[DockerConfig] = None) -> str:
        """Return a tag for an image matching ``config``, building it if missing.

        Raises:
            ImageBuildFailure: If the build command fails.
        """
        if config is None or config.is_default():
            return self._ensure_default_image()

        base_image = config.base_image or DEFAULT_BASE_IMAGE
        custom_steps = list(config.steps)
        instructions = build_instructions(base_image, self.profile.build_steps, custom_steps)
        tag = compute_image_tag(
            base_image,
            custom_steps,
            agent_id=self.profile.agent_id,
            fixed_steps=self.profile.build_steps,
        )

        logger.info("ensuring custom image %s (%d instruction(s))", tag, len(instructions))
        if self.image_exists(tag):
            logger.info("custom image %s already built", tag)
            return tag

        self.build_image(tag, instructions)
        return tag

    def _ensure_default_image(self) -> str:
        tag = self.profile.default_image
        logger.info("ensuring default image %s", tag)
        if self.image_exists(tag):
            logger.info("default image %s already built", tag)
            return tag

        self.build_image(tag, build_instructions(DEFAULT_BASE_IMAGE, self.profile.build_steps, []))
        return tag

    def image_exists(self, tag: str) -> bool:
        result = self._run(["image", "inspect", tag], check=False)
        return getattr(result, "returncode", 1) == 0

    def build_image(self, tag: str, instructions: Sequence[str]) -> Path:
        """Write the build context for ``tag`` and run the build.

        The context directory is kept after failures for inspection.

        Returns:
            The generated Dockerfile path.
        """
        build_dir = self.paths.build_context_dir(tag)
        dockerfile = write_text(build_dir / "Dockerfile", render_dockerfile(instructions))

        logger.info("building image %s from %s", tag, dockerfile)
        try:
            self._run(["build", "-f", str(dockerfile), "-t", tag, str(build_dir)])
        except ExternalToolFailure as exc:
            raise ImageBuildFailure(
                f"Failed to build image {tag}: {exc}",
                argv=exc.argv,
                returncode=exc.returncode,
                stdout=exc.stdout,
                stderr=exc.stderr,
                context={"dockerfile": str(dockerfile)},
            ) from exc
        return dockerfile


__all__ = [
    "ImageCache",
    "build_instructions",
    "render_dockerfile",
    "compute_cache_key",
    "compute_image_tag",
]
