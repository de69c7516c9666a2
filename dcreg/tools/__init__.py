"""FSL/HCP command wrappers."""

from .fsl import ContainerCall, FslBackend, FslTool

__all__ = ["ContainerCall", "FslBackend", "FslTool"]
