"""Container image resolution and caching."""
from .builder import ImageCache, compute_image_tag
from .shared import (
    AGENT_PROFILES,
    DEFAULT_BASE_IMAGE,
    DEFAULT_BUILD_STEPS,
    DEFAULT_IMAGE,
    AgentProfile,
    get_agent_profile,
)

__all__ = [
    "ImageCache",
    "compute_image_tag",
    "AGENT_PROFILES",
    "DEFAULT_BASE_IMAGE",
    "DEFAULT_BUILD_STEPS",
    "DEFAULT_IMAGE",
    "AgentProfile",
    "get_agent_profile",
]
