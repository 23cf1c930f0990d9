"""Configuration management for Scatter3D.

This module defines the scatter scene description using Pydantic for
validation. A config can be loaded from a JSON file or constructed
programmatically, then turned into a node tree by ``core.builder``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, PositiveFloat, field_validator

from ..modifiers.modifiers import MODIFIERS
from ..scene.transform import Transform3D


class ScatterParams(BaseModel):
    """Settings of the Scatter root node."""

    name: str = Field(default="Scatter", description="Root node name")
    seed: int = Field(default=0, description="Seed shared by all modifiers")
    use_instancing: bool = Field(
        default=True,
        description="Batch instances per item (False = one node per instance)"
    )
    transform: Transform3D = Field(
        default_factory=Transform3D,
        description="Placement of the Scatter node"
    )


class ModifierParams(BaseModel):
    """One entry of the modifier stack."""

    name: str = Field(description="Registered modifier name")
    enabled: bool = Field(default=True, description="Skip the modifier when False")
    params: dict[str, Any] = Field(
        default_factory=dict,
        description="Modifier parameters (see `scatter3d modifiers`)"
    )

    @field_validator("name")
    @classmethod
    def _known_modifier(cls, value: str) -> str:
        if value not in MODIFIERS:
            raise ValueError(f"Unknown modifier: {value}. Available: {list(MODIFIERS.keys())}")
        return value


class ShapeParams(BaseModel):
    """A shape region child of the Scatter node."""

    name: str = Field(default="ScatterShape", description="Node name")
    type: Literal["sphere", "box"] = Field(default="sphere", description="Shape type")
    radius: float = Field(default=1.0, gt=0, description="Sphere radius")
    size: tuple[PositiveFloat, PositiveFloat, PositiveFloat] = Field(
        default=(1.0, 1.0, 1.0),
        description="Box size (x, y, z)"
    )
    exclusive: bool = Field(default=False, description="Carve this region out")
    transform: Transform3D = Field(
        default_factory=Transform3D,
        description="Placement relative to the Scatter node"
    )


class ItemParams(BaseModel):
    """An item template child of the Scatter node."""

    name: str = Field(default="ScatterItem", description="Node name")
    proportion: int = Field(default=100, ge=1, description="Weight in the instance split")
    mesh: str = Field(
        default="box",
        description="Primitive (box, sphere, cylinder) or path to a mesh file"
    )
    mesh_size: float | None = Field(
        default=None,
        gt=0,
        description="Primitive size or max extent of a loaded mesh"
    )
    source_transform: Transform3D = Field(
        default_factory=Transform3D,
        description="Transform of the template geometry"
    )
    source_scale_multiplier: float = Field(default=1.0, gt=0, description="Uniform instance scale")
    source_ignore_position: bool = Field(default=True)
    source_ignore_rotation: bool = Field(default=True)
    source_ignore_scale: bool = Field(default=False)


class Scatter3DConfig(BaseModel):
    """Main configuration container."""

    scatter: ScatterParams = Field(default_factory=ScatterParams)
    modifiers: list[ModifierParams] = Field(default_factory=list)
    shapes: list[ShapeParams] = Field(default_factory=list)
    items: list[ItemParams] = Field(default_factory=list)

    @classmethod
    def from_file(cls, path: Path | str) -> Scatter3DConfig:
        """Load configuration from a JSON file."""
        path = Path(path)
        with open(path) as f:
            data = json.load(f)
        return cls.model_validate(data)

    def to_file(self, path: Path | str) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)

    @classmethod
    def default(cls) -> Scatter3DConfig:
        """A small working scene: one sphere region, two weighted items."""
        return cls(
            modifiers=[
                ModifierParams(name="create_inside_random", params={"amount": 100}),
                ModifierParams(
                    name="randomize_transforms",
                    params={"rotation": [0.0, 0.0, 180.0], "scale": [0.2, 0.2, 0.2]},
                ),
            ],
            shapes=[ShapeParams(name="Area", type="sphere", radius=5.0)],
            items=[
                ItemParams(name="Rocks", proportion=3, mesh="sphere", mesh_size=0.5),
                ItemParams(name="Crates", proportion=1, mesh="box", mesh_size=0.4),
            ],
        )
