"""Modifiers that build and adjust the placement transform list.

Each modifier takes the current TransformList (an ``(N, 4, 4)`` array of
world-space matrices) and returns a new one. Generators append transforms
sampled from the domain; adjusters modify transforms in place order.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation

from ..scene.signals import Signal
from ..scene.transform import identity_stack

if TYPE_CHECKING:
    from ..domain.domain import Domain

logger = logging.getLogger(__name__)

# Rejection sampling draws candidates in batches of this many points
_SAMPLE_BATCH = 256
_MAX_SAMPLE_ROUNDS = 64
# Grids with more candidate cells than this are skipped
_MAX_GRID_POINTS = 1_000_000


class BaseModifier(ABC):
    """Abstract base class for modifiers.

    Subclasses declare their tunable attributes in ``defaults``; they are
    set as instance attributes and can be changed with :meth:`set`.
    """

    defaults: dict[str, Any] = {}

    def __init__(self, enabled: bool = True, **params: Any):
        self.enabled = enabled
        self.changed = Signal("changed")
        for key, value in self.defaults.items():
            setattr(self, key, value)
        self._apply(params)

    @property
    @abstractmethod
    def name(self) -> str:
        """Modifier name for config and logging."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of this modifier."""
        pass

    @abstractmethod
    def process(
        self,
        transforms: NDArray[np.float64],
        domain: Domain,
        rng: np.random.Generator,
    ) -> NDArray[np.float64]:
        """Return the transform list after this modifier.

        Args:
            transforms: (N, 4, 4) world-space placement matrices
            domain: Placement domain with discovered shapes and bounds
            rng: Random generator seeded by the owning stack

        Returns:
            New (M, 4, 4) transform list
        """
        pass

    def set(self, **params: Any) -> None:
        """Update parameters and notify listeners."""
        self._apply(params)
        self.changed.emit()

    def params(self) -> dict[str, Any]:
        return {key: getattr(self, key) for key in self.defaults}

    def _apply(self, params: dict[str, Any]) -> None:
        for key, value in params.items():
            if key not in self.defaults:
                raise ValueError(
                    f"Unknown parameter '{key}' for modifier {self.name}. "
                    f"Available: {list(self.defaults.keys())}"
                )
            setattr(self, key, value)

    def __repr__(self) -> str:
        state = "" if self.enabled else ", disabled"
        return f"{type(self).__name__}({self.params()}{state})"


def _sample_domain(
    domain: Domain,
    amount: int,
    rng: np.random.Generator,
) -> NDArray[np.float64]:
    """Rejection-sample up to ``amount`` points inside the domain."""
    bounds = domain.bounds
    if bounds is None or amount <= 0:
        return np.empty((0, 3))

    found: list[NDArray[np.float64]] = []
    total = 0
    for _ in range(_MAX_SAMPLE_ROUNDS):
        batch = max(_SAMPLE_BATCH, (amount - total) * 2)
        candidates = rng.uniform(bounds.min, bounds.max, size=(batch, 3))
        accepted = candidates[domain.is_point_inside(candidates)]
        found.append(accepted)
        total += len(accepted)
        if total >= amount:
            break
    else:
        logger.debug(f"Domain sampling stopped at {total}/{amount} points")

    return np.vstack(found)[:amount]


def _grid_spacing(value) -> NDArray[np.float64]:
    return np.broadcast_to(np.asarray(value, dtype=np.float64), (3,))


def _positions_to_transforms(positions: NDArray[np.float64]) -> NDArray[np.float64]:
    transforms = identity_stack(len(positions))
    transforms[:, :3, 3] = positions
    return transforms


class CreateInsideRandom(BaseModifier):
    """Append randomly placed transforms inside the domain."""

    defaults = {"amount": 20}

    @property
    def name(self) -> str:
        return "create_inside_random"

    @property
    def description(self) -> str:
        return "Random positions inside the domain shapes"

    def process(self, transforms, domain, rng):
        positions = _sample_domain(domain, int(self.amount), rng)
        return np.concatenate([transforms, _positions_to_transforms(positions)])


class CreateInsideGrid(BaseModifier):
    """Append transforms on a regular grid clipped to the domain."""

    defaults = {"spacing": (1.0, 1.0, 1.0)}

    @property
    def name(self) -> str:
        return "create_inside_grid"

    @property
    def description(self) -> str:
        return "Grid positions inside the domain shapes"

    def _apply(self, params: dict[str, Any]) -> None:
        if "spacing" in params:
            spacing = _grid_spacing(params["spacing"])
            if np.any(spacing <= 0):
                raise ValueError(f"Grid spacing must be positive, got {spacing.tolist()}")
        super()._apply(params)

    def process(self, transforms, domain, rng):
        bounds = domain.bounds
        if bounds is None:
            return transforms

        spacing = _grid_spacing(self.spacing)
        if np.any(spacing <= 0):
            logger.debug(f"Skipping grid with non-positive spacing {spacing.tolist()}")
            return transforms

        cells = np.floor((bounds.max - bounds.min) / spacing) + 1
        if np.prod(cells) > _MAX_GRID_POINTS:
            logger.debug(
                f"Skipping grid of {np.prod(cells):.0f} cells (limit {_MAX_GRID_POINTS})"
            )
            return transforms

        axes = [
            np.arange(bounds.min[i], bounds.max[i] + 1e-9, spacing[i])
            for i in range(3)
        ]
        grid = np.stack(np.meshgrid(*axes, indexing="ij"), axis=-1).reshape(-1, 3)
        positions = grid[domain.is_point_inside(grid)]
        return np.concatenate([transforms, _positions_to_transforms(positions)])


class RandomizeTransforms(BaseModifier):
    """Add random position, rotation and scale variation.

    Ranges are symmetric: a position range of 1.0 moves each axis by up to
    +/- 1.0. Rotation is in degrees. Scale variation is relative.
    """

    defaults = {
        "position": (0.0, 0.0, 0.0),
        "rotation": (0.0, 0.0, 0.0),
        "scale": (0.0, 0.0, 0.0),
    }

    @property
    def name(self) -> str:
        return "randomize_transforms"

    @property
    def description(self) -> str:
        return "Random position, rotation and scale offsets"

    def process(self, transforms, domain, rng):
        count = len(transforms)
        if count == 0:
            return transforms

        result = transforms.copy()
        position = rng.uniform(-1.0, 1.0, size=(count, 3)) * np.asarray(self.position)
        angles = rng.uniform(-1.0, 1.0, size=(count, 3)) * np.asarray(self.rotation)
        scale = 1.0 + rng.uniform(-1.0, 1.0, size=(count, 3)) * np.asarray(self.scale)

        rotations = Rotation.from_euler("xyz", angles, degrees=True).as_matrix()
        result[:, :3, :3] = rotations @ result[:, :3, :3] * scale[:, np.newaxis, :]
        result[:, :3, 3] += position
        return result


class OffsetPosition(BaseModifier):
    """Translate every transform by a fixed offset."""

    defaults = {"offset": (0.0, 0.0, 0.0)}

    @property
    def name(self) -> str:
        return "offset_position"

    @property
    def description(self) -> str:
        return "Move all transforms by a constant offset"

    def process(self, transforms, domain, rng):
        result = transforms.copy()
        result[:, :3, 3] += np.asarray(self.offset, dtype=np.float64)
        return result


class OffsetScale(BaseModifier):
    """Multiply the scale of every transform."""

    defaults = {"factor": (1.0, 1.0, 1.0)}

    @property
    def name(self) -> str:
        return "offset_scale"

    @property
    def description(self) -> str:
        return "Scale all transforms by a constant factor"

    def process(self, transforms, domain, rng):
        factor = np.broadcast_to(np.asarray(self.factor, dtype=np.float64), (3,))
        result = transforms.copy()
        result[:, :3, :3] = result[:, :3, :3] * factor
        return result


# Registry of available modifiers
MODIFIERS: dict[str, type[BaseModifier]] = {
    "create_inside_random": CreateInsideRandom,
    "create_inside_grid": CreateInsideGrid,
    "randomize_transforms": RandomizeTransforms,
    "offset_position": OffsetPosition,
    "offset_scale": OffsetScale,
}


def get_modifier(name: str, **params: Any) -> BaseModifier:
    """Create a modifier by name.

    Args:
        name: Modifier name (see MODIFIERS)
        **params: Initial parameter values

    Returns:
        Modifier instance

    Raises:
        ValueError: If modifier name is not recognized
    """
    if name not in MODIFIERS:
        raise ValueError(f"Unknown modifier: {name}. Available: {list(MODIFIERS.keys())}")

    return MODIFIERS[name](**params)


def list_modifiers() -> list[dict]:
    """List all available modifiers with descriptions."""
    return [
        {"name": cls().name, "description": cls().description, "defaults": dict(cls.defaults)}
        for cls in MODIFIERS.values()
    ]
