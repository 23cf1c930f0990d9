"""Output nodes created under a Scatter root.

Layout::

    Scatter
    └── ScatterOutput            (internal)
        ├── <item name>          one group per item
        │   └── MultiMeshInstance   instanced mode
        └── <item name>
            ├── Instance0           non-instanced mode, one node per instance
            └── ...

All factories are idempotent: calling them again returns the existing node.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from ..scene.node import Node, Node3D
from .multimesh import MeshInstance, MultiMesh, MultiMeshInstance

if TYPE_CHECKING:
    from .item import ScatterItem

logger = logging.getLogger(__name__)

OUTPUT_NAME = "ScatterOutput"
MULTIMESH_NAME = "MultiMeshInstance"


def get_or_create_output_root(scatter: Node) -> Node3D:
    output = scatter.find_child(OUTPUT_NAME)
    if output is None:
        output = scatter.add_child(Node3D(OUTPUT_NAME), internal=True)
    return output


def clear_output(scatter: Node) -> None:
    output = scatter.find_child(OUTPUT_NAME)
    if output is not None:
        output.free()


def get_or_create_item_root(scatter: Node, item: ScatterItem) -> Node3D:
    output = get_or_create_output_root(scatter)
    item_root = output.find_child(item.name)
    if item_root is None:
        item_root = output.add_child(Node3D(item.name))
    return item_root


def prune_item_roots(scatter: Node, items: list[ScatterItem]) -> None:
    """Remove output groups whose item is no longer a child of the scatter."""
    output = scatter.find_child(OUTPUT_NAME)
    if output is None:
        return
    names = {item.name for item in items}
    for child in output.get_children():
        if child.name not in names:
            logger.debug(f"Removing stale output for {child.name}")
            child.free()


def get_or_create_multimesh(scatter: Node, item: ScatterItem, count: int) -> MultiMesh | None:
    """Return the item's instance buffer resized to ``count``.

    Returns None when the item has no mesh to instance.
    """
    if item.mesh is None:
        return None

    item_root = get_or_create_item_root(scatter, item)
    for child in item_root.get_children():
        if not isinstance(child, MultiMeshInstance):
            child.free()

    node = item_root.find_child(MULTIMESH_NAME)
    if node is None:
        node = item_root.add_child(MultiMeshInstance(MULTIMESH_NAME, MultiMesh()))

    node.multimesh.mesh = item.mesh
    node.multimesh.resize(count)
    return node.multimesh


class InstanceGroup:
    """Instance buffer backed by one MeshInstance node per instance.

    Used when instancing is disabled; it exposes the same buffer operations
    as MultiMesh so the distribution treats both outputs alike.
    """

    def __init__(self, item_root: Node3D, item: ScatterItem):
        self.item_root = item_root
        self.item = item
        self.nodes = self._collect()

    @property
    def instance_count(self) -> int:
        return len(self.nodes)

    def _collect(self) -> list[MeshInstance]:
        return [c for c in self.item_root.get_children() if isinstance(c, MeshInstance)]

    def resize(self, count: int) -> None:
        nodes = self.nodes
        for node in nodes[count:]:
            node.free()
        for index in range(len(nodes), count):
            self.item_root.add_child(MeshInstance(f"Instance{index}", self.item.mesh))
        self.nodes = self._collect()
        for node in self.nodes:
            node.mesh = self.item.mesh

    def set_instance_transform(self, index: int, matrix: NDArray[np.float64]) -> None:
        self.nodes[index].transform = matrix

    def set_instance_color(self, index: int, color) -> None:
        self.nodes[index].color = tuple(color)


def get_or_create_instance_group(scatter: Node, item: ScatterItem, count: int) -> InstanceGroup:
    """Return the item's per-node output resized to ``count``."""
    item_root = get_or_create_item_root(scatter, item)
    for child in item_root.get_children():
        if not isinstance(child, MeshInstance):
            child.free()

    group = InstanceGroup(item_root, item)
    group.resize(count)
    return group


def empty_item_output(scatter: Node, item: ScatterItem) -> None:
    """Leave the item's existing output with zero instances."""
    output = scatter.find_child(OUTPUT_NAME)
    item_root = output.find_child(item.name) if output is not None else None
    if item_root is None:
        return
    for child in item_root.get_children():
        if isinstance(child, MultiMeshInstance):
            child.multimesh.resize(0)
        else:
            child.free()
