"""The placement domain: the set of shapes a Scatter node distributes into.

A Domain collects the ScatterShape children of a Scatter root. Inclusive
shapes define where instances may go; exclusive shapes carve regions out.
Positions are tested in world space.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from ..scene.transform import affine_inverse, transform_points
from .shapes import BaseShape, ScatterShape

if TYPE_CHECKING:
    from ..scene.node import Node

logger = logging.getLogger(__name__)


@dataclass
class DomainShapeInfo:
    """A shape together with the world transform it was discovered at."""

    node: ScatterShape
    shape: BaseShape
    global_transform: NDArray[np.float64]

    def is_point_inside(self, points: NDArray[np.float64]) -> NDArray[np.bool_]:
        local = transform_points(affine_inverse(self.global_transform), points)
        return self.shape.is_point_inside(local)

    def world_bounds(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Axis-aligned world box around the transformed local box."""
        min_pt, max_pt = self.shape.local_bounds()
        corners = np.array(
            [[x, y, z] for x in (min_pt[0], max_pt[0])
             for y in (min_pt[1], max_pt[1])
             for z in (min_pt[2], max_pt[2])]
        )
        world = transform_points(self.global_transform, corners)
        return world.min(axis=0), world.max(axis=0)


@dataclass
class Bounds:
    """World-space axis-aligned bounding box of the domain."""

    min: NDArray[np.float64]
    max: NDArray[np.float64]

    @property
    def size(self) -> NDArray[np.float64]:
        return self.max - self.min

    @property
    def center(self) -> NDArray[np.float64]:
        return (self.min + self.max) / 2

    @property
    def volume(self) -> float:
        return float(np.prod(self.size))


class Domain:
    """Aggregate of inclusive and exclusive shape regions."""

    def __init__(self):
        self.positive_shapes: list[DomainShapeInfo] = []
        self.negative_shapes: list[DomainShapeInfo] = []
        self.bounds: Bounds | None = None

    def discover_shapes(self, root: Node) -> None:
        """Collect the ScatterShape direct children of ``root``."""
        self.positive_shapes.clear()
        self.negative_shapes.clear()

        for child in root.get_children(include_internal=False):
            if not isinstance(child, ScatterShape):
                continue
            info = DomainShapeInfo(
                node=child,
                shape=child.shape,
                global_transform=child.global_transform,
            )
            if child.exclusive:
                self.negative_shapes.append(info)
            else:
                self.positive_shapes.append(info)

        logger.debug(
            f"Discovered {len(self.positive_shapes)} inclusive and "
            f"{len(self.negative_shapes)} exclusive shapes"
        )
        self.compute_bounds()

    def compute_bounds(self) -> Bounds | None:
        """Recompute the world box of all inclusive shapes."""
        for info in self.positive_shapes + self.negative_shapes:
            info.global_transform = info.node.global_transform

        if not self.positive_shapes:
            self.bounds = None
            return None

        boxes = [info.world_bounds() for info in self.positive_shapes]
        self.bounds = Bounds(
            min=np.min([box[0] for box in boxes], axis=0),
            max=np.max([box[1] for box in boxes], axis=0),
        )
        return self.bounds

    def is_empty(self) -> bool:
        return not self.positive_shapes

    def is_point_inside(self, points: NDArray[np.float64]) -> NDArray[np.bool_]:
        """Test world-space points against the whole domain.

        A point is inside when at least one inclusive shape contains it and
        no exclusive shape does.
        """
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        inside = np.zeros(len(points), dtype=bool)
        for info in self.positive_shapes:
            inside |= info.is_point_inside(points)
        for info in self.negative_shapes:
            inside &= ~info.is_point_inside(points)
        return inside

    def get_copy(self) -> Domain:
        """Return a new domain with the same shape list (shapes are shared)."""
        domain = Domain()
        domain.positive_shapes = list(self.positive_shapes)
        domain.negative_shapes = list(self.negative_shapes)
        domain.bounds = self.bounds
        return domain

    def stats(self) -> dict:
        return {
            "inclusive_shapes": len(self.positive_shapes),
            "exclusive_shapes": len(self.negative_shapes),
            "bounds_min": self.bounds.min.tolist() if self.bounds else None,
            "bounds_max": self.bounds.max.tolist() if self.bounds else None,
        }

    def __repr__(self) -> str:
        return (
            f"Domain({len(self.positive_shapes)} inclusive, "
            f"{len(self.negative_shapes)} exclusive)"
        )
