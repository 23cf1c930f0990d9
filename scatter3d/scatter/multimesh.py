"""Batched per-instance output buffers.

A MultiMesh stores one mesh plus a transform and a color per instance, the
CPU-side equivalent of a GPU instance buffer. MultiMeshInstance is the node
that places a MultiMesh in the tree.
"""

from __future__ import annotations

import numpy as np
import trimesh
from numpy.typing import NDArray

from ..scene.node import Node3D
from ..scene.transform import identity_stack


class MultiMesh:
    """Instance buffer: (N, 4, 4) transforms and (N, 4) RGBA colors.

    Attributes:
        mesh: Geometry drawn for every instance (may be None)
        visible_instance_count: Number of instances drawn, -1 for all
    """

    def __init__(self, mesh: trimesh.Trimesh | None = None, instance_count: int = 0):
        self.mesh = mesh
        self.visible_instance_count = -1
        self.transforms = identity_stack(0)
        self.colors = np.empty((0, 4), dtype=np.float64)
        self.resize(instance_count)

    @property
    def instance_count(self) -> int:
        return len(self.transforms)

    @instance_count.setter
    def instance_count(self, count: int) -> None:
        self.resize(count)

    def resize(self, count: int) -> None:
        """Set the instance count. Existing instances are kept, new ones
        start at identity with white color."""
        count = max(0, int(count))
        old = self.instance_count
        if count <= old:
            self.transforms = self.transforms[:count].copy()
            self.colors = self.colors[:count].copy()
            return

        self.transforms = np.concatenate([self.transforms, identity_stack(count - old)])
        self.colors = np.concatenate([self.colors, np.ones((count - old, 4))])

    def set_instance_transform(self, index: int, matrix: NDArray[np.float64]) -> None:
        self.transforms[index] = matrix

    def get_instance_transform(self, index: int) -> NDArray[np.float64]:
        return self.transforms[index].copy()

    def set_instance_color(self, index: int, color) -> None:
        self.colors[index] = color

    def get_instance_color(self, index: int) -> NDArray[np.float64]:
        return self.colors[index].copy()

    def drawn_transforms(self) -> NDArray[np.float64]:
        if self.visible_instance_count < 0:
            return self.transforms
        return self.transforms[:self.visible_instance_count]

    def __repr__(self) -> str:
        return f"MultiMesh({self.instance_count} instances)"


class MultiMeshInstance(Node3D):
    """Node that draws a MultiMesh relative to its own transform."""

    def __init__(self, name: str = "", multimesh: MultiMesh | None = None):
        super().__init__(name)
        self.multimesh = multimesh


class MeshInstance(Node3D):
    """Node that draws a single mesh at its own transform."""

    def __init__(self, name: str = "", mesh: trimesh.Trimesh | None = None):
        super().__init__(name)
        self.mesh = mesh
        self.color = (1.0, 1.0, 1.0, 1.0)
