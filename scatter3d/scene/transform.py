"""3D transformation utilities for the scene runtime.

Provides the Transform3D model (position, rotation, per-axis scale) used to
describe node placement, plus helpers that work directly on raw 4x4
homogeneous matrices and on stacks of them (``(N, 4, 4)`` arrays).
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field
from scipy.spatial.transform import Rotation


class Transform3D(BaseModel):
    """3D transformation: position + rotation + scale.

    Attributes:
        position: XYZ position in scene units
        rotation: XYZ Euler angles in degrees (applied in XYZ order)
        scale: Per-axis scale factors
    """

    position: tuple[float, float, float] = Field(
        default=(0.0, 0.0, 0.0),
        description="XYZ position"
    )
    rotation: tuple[float, float, float] = Field(
        default=(0.0, 0.0, 0.0),
        description="XYZ rotation in degrees (Euler angles)"
    )
    scale: tuple[float, float, float] = Field(
        default=(1.0, 1.0, 1.0),
        description="Per-axis scale factors"
    )

    model_config = {"frozen": False}

    def to_matrix(self) -> NDArray[np.float64]:
        """Convert to 4x4 homogeneous transformation matrix.

        The transformation order is: Scale -> Rotate -> Translate,
        so the matrix is built as T @ R @ S.
        """
        matrix = np.eye(4, dtype=np.float64)
        rot = Rotation.from_euler('xyz', self.rotation, degrees=True)
        matrix[:3, :3] = rot.as_matrix() @ np.diag(self.scale)
        matrix[:3, 3] = self.position
        return matrix

    @classmethod
    def from_matrix(cls, matrix: NDArray[np.float64]) -> Transform3D:
        """Create Transform3D from a 4x4 transformation matrix.

        Only matrices without shear or reflection decompose cleanly.

        Raises:
            ValueError: If the matrix contains a reflection or zero scaling
        """
        basis = matrix[:3, :3]

        if np.linalg.det(basis) < 0:
            raise ValueError(
                "Matrix contains a reflection (negative determinant). "
                "Transform3D only supports proper rotations."
            )

        scales = basis_scale(matrix)
        if np.any(scales < 1e-10):
            raise ValueError(
                f"Matrix contains zero or near-zero scale: {scales}. "
                "Transform3D requires positive scaling."
            )

        rot = Rotation.from_matrix(basis / scales)
        rotation = tuple(rot.as_euler('xyz', degrees=True).tolist())
        position = tuple(matrix[:3, 3].tolist())

        return cls(position=position, rotation=rotation, scale=tuple(scales.tolist()))

    def apply_to_points(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Apply transformation to an Nx3 array of points."""
        return transform_points(self.to_matrix(), points)

    def compose(self, other: Transform3D) -> Transform3D:
        """Compose this transform with another.

        The result applies self first, then other.
        """
        return Transform3D.from_matrix(other.to_matrix() @ self.to_matrix())

    def inverse(self) -> Transform3D:
        """Return the inverse transformation."""
        return Transform3D.from_matrix(affine_inverse(self.to_matrix()))

    @classmethod
    def identity(cls) -> Transform3D:
        """Return identity transform (no transformation)."""
        return cls()

    def __repr__(self) -> str:
        return (
            f"Transform3D(pos={self.position}, "
            f"rot={self.rotation}, scale={self.scale})"
        )


def identity_stack(count: int) -> NDArray[np.float64]:
    """Return ``count`` identity matrices as an (N, 4, 4) array."""
    return np.tile(np.eye(4, dtype=np.float64), (count, 1, 1))


def translation_matrix(offset) -> NDArray[np.float64]:
    matrix = np.eye(4, dtype=np.float64)
    matrix[:3, 3] = offset
    return matrix


def affine_inverse(matrix: NDArray[np.float64]) -> NDArray[np.float64]:
    """Invert an affine 4x4 matrix (or a stack of them).

    Uses the block form inv([B t; 0 1]) = [inv(B) -inv(B)t; 0 1], which keeps
    the bottom row exact.
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    result = np.zeros_like(matrix)
    inv_basis = np.linalg.inv(matrix[..., :3, :3])
    result[..., :3, :3] = inv_basis
    result[..., :3, 3] = -np.einsum("...ij,...j->...i", inv_basis, matrix[..., :3, 3])
    result[..., 3, 3] = 1.0
    return result


def basis_scale(matrix: NDArray[np.float64]) -> NDArray[np.float64]:
    """Return the length of each basis column (the per-axis scale)."""
    return np.linalg.norm(np.asarray(matrix)[..., :3, :3], axis=-2)


def transform_points(
    matrix: NDArray[np.float64],
    points: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Apply a 4x4 matrix to an Nx3 array of points."""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    return points @ matrix[:3, :3].T + matrix[:3, 3]
