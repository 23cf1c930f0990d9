"""Scene runtime: nodes, transforms, signals and the tick loop.

This module provides the host side the scatter nodes plug into.
"""

from .transform import Transform3D
from .signals import Signal
from .node import Node, Node3D, SceneTree

__all__ = [
    "Transform3D",
    "Signal",
    "Node",
    "Node3D",
    "SceneTree",
]
