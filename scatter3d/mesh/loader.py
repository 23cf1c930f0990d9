"""Item mesh loading utilities using trimesh.

Item geometry comes either from a built-in primitive ("box", "sphere",
"cylinder") or from a mesh file (STL, OBJ, PLY, GLB, ...).
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import trimesh

if TYPE_CHECKING:
    from numpy.typing import NDArray


PRIMITIVES = ("box", "sphere", "cylinder")


def create_primitive(name: str, size: float = 1.0) -> trimesh.Trimesh:
    """Create a primitive mesh centered at the origin.

    Args:
        name: One of PRIMITIVES
        size: Edge length (box) or diameter (sphere, cylinder)

    Raises:
        ValueError: If the primitive name is not recognized
    """
    if name == "box":
        return trimesh.creation.box(extents=[size, size, size])
    if name == "sphere":
        return trimesh.creation.icosphere(subdivisions=2, radius=size / 2)
    if name == "cylinder":
        return trimesh.creation.cylinder(radius=size / 2, height=size)
    raise ValueError(f"Unknown primitive: {name}. Available: {list(PRIMITIVES)}")


class MeshLoader:
    """Load and prepare item meshes from files."""

    SUPPORTED_FORMATS = {".stl", ".obj", ".ply", ".off", ".glb", ".gltf"}

    def __init__(self, path: str | Path):
        """Load a mesh from file.

        Args:
            path: Path to mesh file (STL, OBJ, PLY, etc.)
        """
        self.path = Path(path)

        if not self.path.exists():
            raise FileNotFoundError(f"Mesh file not found: {self.path}")

        if self.path.suffix.lower() not in self.SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported format: {self.path.suffix}. "
                f"Supported: {self.SUPPORTED_FORMATS}"
            )

        self._mesh = trimesh.load_mesh(str(self.path))

        # Scenes (multiple meshes) are merged into one item mesh
        if isinstance(self._mesh, trimesh.Scene):
            meshes = [
                geom for geom in self._mesh.geometry.values()
                if isinstance(geom, trimesh.Trimesh)
            ]
            if not meshes:
                raise ValueError("No valid meshes found in scene")
            self._mesh = trimesh.util.concatenate(meshes)

    @property
    def mesh(self) -> trimesh.Trimesh:
        return self._mesh

    @property
    def size(self) -> NDArray[np.float64]:
        """Return size of bounding box (x, y, z)."""
        return self._mesh.bounds[1] - self._mesh.bounds[0]

    def scale_to_fit(self, max_size: float) -> MeshLoader:
        """Scale mesh to fit within max_size (preserving aspect ratio)."""
        current_max = self.size.max()
        if current_max > 0:
            self._mesh.vertices *= max_size / current_max
        return self

    def __repr__(self) -> str:
        return (
            f"MeshLoader({self.path.name}, "
            f"{len(self._mesh.vertices)} vertices, "
            f"{len(self._mesh.faces)} faces)"
        )


def load_item_mesh(source: str, size: float | None = None) -> trimesh.Trimesh:
    """Resolve an item mesh reference.

    Args:
        source: Primitive name or path to a mesh file
        size: Primitive size, or maximum extent for loaded files
            (None keeps the file's own size; primitives default to 1.0)
    """
    if source in PRIMITIVES:
        return create_primitive(source, 1.0 if size is None else size)

    loader = MeshLoader(source)
    if size is not None:
        loader.scale_to_fit(size)
    return loader.mesh
