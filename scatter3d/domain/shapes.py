"""Shape regions used to define where instances may be placed.

Each shape is described in its own local space (centered on the origin).
ScatterShape nodes place a shape in the scene and mark it inclusive or
exclusive.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import NDArray

from ..scene.node import Node3D
from ..scene.signals import Signal


class BaseShape(ABC):
    """Abstract base class for scatter shapes."""

    def __init__(self):
        self.changed = Signal("changed")

    @property
    @abstractmethod
    def name(self) -> str:
        """Shape type name for config and display."""
        pass

    @abstractmethod
    def is_point_inside(self, points: NDArray[np.float64]) -> NDArray[np.bool_]:
        """Test an Nx3 array of local-space points.

        Returns:
            N-length boolean mask
        """
        pass

    @abstractmethod
    def local_bounds(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Return the (min_xyz, max_xyz) box in local space."""
        pass

    def volume(self) -> float:
        min_pt, max_pt = self.local_bounds()
        return float(np.prod(max_pt - min_pt))


class SphereShape(BaseShape):
    """A sphere of the given radius."""

    def __init__(self, radius: float = 1.0):
        super().__init__()
        self._radius = float(radius)

    @property
    def name(self) -> str:
        return "sphere"

    @property
    def radius(self) -> float:
        return self._radius

    @radius.setter
    def radius(self, value: float) -> None:
        self._radius = float(value)
        self.changed.emit()

    def is_point_inside(self, points: NDArray[np.float64]) -> NDArray[np.bool_]:
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return np.einsum("ij,ij->i", points, points) <= self._radius ** 2

    def local_bounds(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        extent = np.full(3, self._radius)
        return -extent, extent

    def volume(self) -> float:
        return 4.0 / 3.0 * np.pi * self._radius ** 3

    def __repr__(self) -> str:
        return f"SphereShape(radius={self._radius})"


def _box_size(value) -> NDArray[np.float64]:
    size = np.broadcast_to(np.asarray(value, dtype=np.float64), (3,)).copy()
    if np.any(size <= 0):
        raise ValueError(f"Box size must be positive, got {size.tolist()}")
    return size


class BoxShape(BaseShape):
    """An axis-aligned (in local space) box of the given full size."""

    def __init__(self, size: tuple[float, float, float] = (1.0, 1.0, 1.0)):
        super().__init__()
        self._size = _box_size(size)

    @property
    def name(self) -> str:
        return "box"

    @property
    def size(self) -> NDArray[np.float64]:
        return self._size.copy()

    @size.setter
    def size(self, value) -> None:
        self._size = _box_size(value)
        self.changed.emit()

    def is_point_inside(self, points: NDArray[np.float64]) -> NDArray[np.bool_]:
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return np.all(np.abs(points) <= self._size / 2, axis=1)

    def local_bounds(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        return -self._size / 2, self._size / 2

    def __repr__(self) -> str:
        return f"BoxShape(size={self._size.tolist()})"


SHAPES: dict[str, type[BaseShape]] = {
    "sphere": SphereShape,
    "box": BoxShape,
}


def get_shape(name: str, **kwargs) -> BaseShape:
    """Create a shape by type name.

    Raises:
        ValueError: If shape name is not recognized
    """
    if name not in SHAPES:
        raise ValueError(f"Unknown shape: {name}. Available: {list(SHAPES.keys())}")
    return SHAPES[name](**kwargs)


class ScatterShape(Node3D):
    """Places a shape region in the scene.

    Moving the node or editing its shape asks the parent Scatter to rebuild.
    """

    _exported = Node3D._exported + ("_shape", "exclusive")

    def __init__(self, name: str = "", shape: BaseShape | None = None, exclusive: bool = False):
        super().__init__(name)
        self._shape: BaseShape = shape or SphereShape()
        self.exclusive = exclusive

    @property
    def shape(self) -> BaseShape:
        return self._shape

    @shape.setter
    def shape(self, value: BaseShape) -> None:
        if self.is_inside_tree():
            self._shape.changed.disconnect(self._on_shape_changed)
            value.changed.connect(self._on_shape_changed)
        self._shape = value
        self._on_shape_changed()

    def _enter_tree(self) -> None:
        self._shape.changed.connect(self._on_shape_changed)

    def _exit_tree(self) -> None:
        self._shape.changed.disconnect(self._on_shape_changed)

    def _on_transform_changed(self) -> None:
        self._on_shape_changed()

    def _on_shape_changed(self) -> None:
        scatter = self.parent
        if scatter is not None and hasattr(scatter, "request_rebuild"):
            scatter.request_rebuild()
