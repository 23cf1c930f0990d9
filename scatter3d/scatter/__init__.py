"""Scattering root node, items and instance output."""

from .distribution import allocate_counts, distribute_transforms, instance_color
from .item import ScatterItem
from .multimesh import MeshInstance, MultiMesh, MultiMeshInstance
from .scatter import Scatter
from .scheduler import RebuildScheduler

__all__ = [
    "allocate_counts",
    "distribute_transforms",
    "instance_color",
    "ScatterItem",
    "MeshInstance",
    "MultiMesh",
    "MultiMeshInstance",
    "Scatter",
    "RebuildScheduler",
]
