"""Container runtime adapters."""
from .docker import AttachOutcome, ContainerRuntime, DockerRuntime, build_launch_args, container_name

__all__ = ["AttachOutcome", "ContainerRuntime", "DockerRuntime", "build_launch_args", "container_name"]
