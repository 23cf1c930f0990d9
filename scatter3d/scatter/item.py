"""Weighted item templates instanced by a Scatter node."""

from __future__ import annotations

import logging

import numpy as np
import trimesh
from numpy.typing import NDArray

from ..scene.node import Node3D
from ..scene.transform import Transform3D, basis_scale

logger = logging.getLogger(__name__)


class ScatterItem(Node3D):
    """A template whose instances are distributed by the parent Scatter.

    Attributes:
        proportion: Integer weight of this item in the total instance count
        mesh: Geometry used for every instance
        source_transform: Transform of the template geometry. Its position,
            rotation and scale are applied to each instance unless the
            matching ``source_ignore_*`` flag is set.
        source_scale_multiplier: Uniform scale applied to every instance
    """

    _exported = Node3D._exported + (
        "_proportion",
        "mesh",
        "source_transform",
        "source_scale_multiplier",
        "source_ignore_position",
        "source_ignore_rotation",
        "source_ignore_scale",
    )

    def __init__(
        self,
        name: str = "",
        proportion: int = 100,
        mesh: trimesh.Trimesh | None = None,
        source_transform: NDArray[np.float64] | Transform3D | None = None,
        source_scale_multiplier: float = 1.0,
        source_ignore_position: bool = True,
        source_ignore_rotation: bool = True,
        source_ignore_scale: bool = False,
    ):
        super().__init__(name)
        self._proportion = 0
        self.proportion = proportion
        self.mesh = mesh
        if isinstance(source_transform, Transform3D):
            source_transform = source_transform.to_matrix()
        self.source_transform = (
            np.eye(4) if source_transform is None
            else np.asarray(source_transform, dtype=np.float64)
        )
        self.source_scale_multiplier = source_scale_multiplier
        self.source_ignore_position = source_ignore_position
        self.source_ignore_rotation = source_ignore_rotation
        self.source_ignore_scale = source_ignore_scale

    @property
    def proportion(self) -> int:
        return self._proportion

    @proportion.setter
    def proportion(self, value: int) -> None:
        value = int(value)
        if value < 1:
            raise ValueError(f"Item proportion must be at least 1, got {value}")
        self._proportion = value
        self._request_parent_rebuild()

    def process_transform(self, t: NDArray[np.float64]) -> NDArray[np.float64]:
        """Apply the template's own transform and scale multiplier to a
        world-space placement."""
        source = self.source_transform
        scales = basis_scale(source)
        local = np.eye(4)

        if not self.source_ignore_rotation:
            local[:3, :3] = source[:3, :3] / scales
        if not self.source_ignore_scale:
            local[:3, :3] = local[:3, :3] * scales
        if not self.source_ignore_position:
            local[:3, 3] = source[:3, 3]

        result = t @ local
        result[:3, :3] *= self.source_scale_multiplier
        return result

    def _request_parent_rebuild(self) -> None:
        scatter = self.parent
        if scatter is not None and hasattr(scatter, "request_rebuild"):
            scatter.request_rebuild()

    def __repr__(self) -> str:
        return f"ScatterItem({self.name!r}, proportion={self._proportion})"
