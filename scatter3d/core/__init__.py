"""Core modules for Scatter3D."""

from .builder import build_scatter, load_scene
from .config import Scatter3DConfig

__all__ = ["build_scatter", "load_scene", "Scatter3DConfig"]
