"""Mesh loading for item geometry."""

from .loader import MeshLoader, PRIMITIVES, create_primitive, load_item_mesh

__all__ = [
    "MeshLoader",
    "PRIMITIVES",
    "create_primitive",
    "load_item_mesh",
]
