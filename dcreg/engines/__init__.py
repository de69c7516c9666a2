"""Execution engines."""

from .base import ExecutionEngine
from .docker import DockerEngine

__all__ = ["ExecutionEngine", "DockerEngine"]
