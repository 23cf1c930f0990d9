"""Build a Scatter node tree from a Scatter3DConfig."""

from __future__ import annotations

import logging
from pathlib import Path

from ..domain.shapes import ScatterShape, get_shape
from ..mesh.loader import load_item_mesh
from ..modifiers.modifiers import get_modifier
from ..modifiers.stack import ModifierStack
from ..scatter.item import ScatterItem
from ..scatter.scatter import Scatter
from ..scene.node import SceneTree
from .config import ItemParams, Scatter3DConfig, ShapeParams

logger = logging.getLogger(__name__)


def build_stack(config: Scatter3DConfig) -> ModifierStack:
    modifiers = []
    for entry in config.modifiers:
        modifier = get_modifier(entry.name, **entry.params)
        modifier.enabled = entry.enabled
        modifiers.append(modifier)
    return ModifierStack(modifiers)


def build_shape(params: ShapeParams) -> ScatterShape:
    if params.type == "sphere":
        shape = get_shape("sphere", radius=params.radius)
    else:
        shape = get_shape("box", size=params.size)

    node = ScatterShape(params.name, shape=shape, exclusive=params.exclusive)
    node.transform = params.transform
    return node


def build_item(params: ItemParams, base_dir: Path | None = None) -> ScatterItem:
    source = params.mesh
    if base_dir is not None and Path(source).suffix and not Path(source).is_absolute():
        source = str(base_dir / source)

    return ScatterItem(
        params.name,
        proportion=params.proportion,
        mesh=load_item_mesh(source, params.mesh_size),
        source_transform=params.source_transform,
        source_scale_multiplier=params.source_scale_multiplier,
        source_ignore_position=params.source_ignore_position,
        source_ignore_rotation=params.source_ignore_rotation,
        source_ignore_scale=params.source_ignore_scale,
    )


def build_scatter(config: Scatter3DConfig, base_dir: Path | None = None) -> Scatter:
    """Create a detached Scatter node with its shapes and items.

    Args:
        config: Scene description
        base_dir: Directory relative mesh paths are resolved against

    Returns:
        Scatter node, not yet inside a tree (no rebuild has run)
    """
    params = config.scatter
    scatter = Scatter(
        params.name,
        seed=params.seed,
        use_instancing=params.use_instancing,
        modifier_stack=build_stack(config),
    )
    scatter.transform = params.transform

    for shape_params in config.shapes:
        scatter.add_child(build_shape(shape_params))
    for item_params in config.items:
        scatter.add_child(build_item(item_params, base_dir))

    logger.debug(
        f"Built {scatter.name}: {len(config.shapes)} shapes, "
        f"{len(config.items)} items, {len(config.modifiers)} modifiers"
    )
    return scatter


def load_scene(config: Scatter3DConfig, base_dir: Path | None = None) -> tuple[SceneTree, Scatter]:
    """Build the scatter and attach it to a fresh SceneTree.

    Attaching runs the first rebuild.
    """
    tree = SceneTree()
    scatter = build_scatter(config, base_dir)
    tree.root.add_child(scatter)
    return tree, scatter
