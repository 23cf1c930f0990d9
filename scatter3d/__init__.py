"""Scatter3D - Weighted instance scattering over shape regions.

A Scatter node runs a modifier stack over a domain of inclusive/exclusive
shapes and splits the resulting placements across its weighted items,
writing them into per-item instance buffers.
"""

__version__ = "0.1.0"

from .core.config import Scatter3DConfig
from .core.builder import build_scatter, load_scene
from .domain import BoxShape, Domain, ScatterShape, SphereShape
from .modifiers import ModifierStack, get_modifier, list_modifiers
from .scatter import MultiMesh, Scatter, ScatterItem, allocate_counts
from .scene import Node, Node3D, SceneTree, Transform3D

__all__ = [
    "Scatter3DConfig",
    "build_scatter",
    "load_scene",
    "BoxShape",
    "Domain",
    "ScatterShape",
    "SphereShape",
    "ModifierStack",
    "get_modifier",
    "list_modifiers",
    "MultiMesh",
    "Scatter",
    "ScatterItem",
    "allocate_counts",
    "Node",
    "Node3D",
    "SceneTree",
    "Transform3D",
]
