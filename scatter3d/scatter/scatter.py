"""The Scatter root node.

Scatter owns a modifier stack and a domain, discovers its ScatterItem and
ScatterShape children, runs the stack to get a transform list and splits
that list across the items proportionally to their weights.
"""

from __future__ import annotations

import logging

import numpy as np
import trimesh
from numpy.typing import NDArray

from ..domain.domain import Domain
from ..modifiers.stack import ModifierStack
from ..scene.node import Node, Node3D
from ..scene.signals import Signal
from .distribution import distribute_transforms
from .item import ScatterItem
from .multimesh import MeshInstance, MultiMeshInstance
from .output import (
    OUTPUT_NAME,
    clear_output,
    empty_item_output,
    get_or_create_instance_group,
    get_or_create_multimesh,
    prune_item_roots,
)
from .scheduler import RebuildScheduler

logger = logging.getLogger(__name__)


class Scatter(Node3D):
    """Scatters instances of its ScatterItem children inside its shapes.

    Signals:
        shape_changed: emitted after every rebuild
        build_completed: emitted after a rebuild that produced output
        validation_changed: emitted when discovery changes what is valid
    """

    _exported = Node3D._exported + (
        "_seed",
        "_use_instancing",
        "_modifier_stack",
        "_domain",
    )

    def __init__(
        self,
        name: str = "",
        seed: int = 0,
        use_instancing: bool = True,
        modifier_stack: ModifierStack | None = None,
    ):
        super().__init__(name)
        self._seed = int(seed)
        self._use_instancing = use_instancing
        self._modifier_stack: ModifierStack | None = None
        self._domain: Domain | None = None

        self.items: list[ScatterItem] = []
        self.total_item_proportion = 0
        self.transforms: NDArray[np.float64] = np.empty((0, 4, 4))
        self.instance_counts: dict[str, int] = {}

        self.shape_changed = Signal("shape_changed")
        self.build_completed = Signal("build_completed")
        self.validation_changed = Signal("validation_changed")
        self.scheduler = RebuildScheduler(self, self._rebuild)

        if modifier_stack is not None:
            self.modifier_stack = modifier_stack

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    @property
    def seed(self) -> int:
        return self._seed

    @seed.setter
    def seed(self, value: int) -> None:
        self._seed = int(value)
        self.request_rebuild()

    @property
    def use_instancing(self) -> bool:
        return self._use_instancing

    @use_instancing.setter
    def use_instancing(self, value: bool) -> None:
        self._use_instancing = bool(value)
        self.request_rebuild()

    @property
    def modifier_stack(self) -> ModifierStack:
        if self._modifier_stack is None:
            self._set_modifier_stack(ModifierStack())
        return self._modifier_stack

    @modifier_stack.setter
    def modifier_stack(self, value: ModifierStack) -> None:
        # Each Scatter owns its stack, never one shared with another node
        self._set_modifier_stack(value.duplicate())
        self.request_rebuild()

    @property
    def domain(self) -> Domain:
        if self._domain is None:
            self._domain = Domain()
        return self._domain

    @domain.setter
    def domain(self, value: Domain) -> None:
        self._domain = value.get_copy()
        self.request_rebuild()

    def _set_modifier_stack(self, stack: ModifierStack) -> None:
        if self._modifier_stack is not None:
            self._disconnect_stack()
        self._modifier_stack = stack
        if self.is_inside_tree():
            self._connect_stack()

    def _connect_stack(self) -> None:
        self.modifier_stack.value_changed.connect(self._on_stack_changed)
        self.modifier_stack.stack_changed.connect(self._on_stack_changed)

    def _disconnect_stack(self) -> None:
        self._modifier_stack.value_changed.disconnect(self._on_stack_changed)
        self._modifier_stack.stack_changed.disconnect(self._on_stack_changed)

    # -------------------------------------------------------------------------
    # Host notifications
    # -------------------------------------------------------------------------

    def _enter_tree(self) -> None:
        if self._is_unowned_duplicate():
            self._take_ownership()
        self._connect_stack()
        self.get_tree().add_process_callback(self.scheduler.flush_if_dirty)

    def _ready(self) -> None:
        self.request_rebuild(True)

    def _exit_tree(self) -> None:
        self._disconnect_stack()
        self.get_tree().remove_process_callback(self.scheduler.flush_if_dirty)

    def _on_child_added(self, child: Node) -> None:
        if not child.internal:
            self.request_rebuild(True)

    def _on_child_removed(self, child: Node) -> None:
        if not child.internal:
            self.request_rebuild(True)

    def _on_stack_changed(self) -> None:
        self.request_rebuild()

    def _on_transform_changed(self) -> None:
        if self._is_unowned_duplicate():
            self._reset_after_duplicate()
            return
        self.domain.compute_bounds()
        self.request_rebuild()

    # -------------------------------------------------------------------------
    # Duplication guard
    # -------------------------------------------------------------------------

    def _is_unowned_duplicate(self) -> bool:
        """True when this node was duplicated and still shares the source's
        stack or domain."""
        source = self.duplicated_from
        if not isinstance(source, Scatter):
            return False
        return (
            source._modifier_stack is self._modifier_stack
            or source._domain is self._domain
        )

    def _take_ownership(self) -> None:
        """Replace the shared stack and domain with ones owned by this node."""
        logger.info(f"{self.name}: duplicate detected, taking ownership of stack and domain")
        stack = self._modifier_stack
        self._set_modifier_stack(stack.duplicate() if stack is not None else ModifierStack())
        self._domain = Domain()
        self.duplicated_from = None

    def _reset_after_duplicate(self) -> None:
        self._take_ownership()
        self.force_rebuild()

    # -------------------------------------------------------------------------
    # Rebuild
    # -------------------------------------------------------------------------

    def request_rebuild(self, force_discover: bool = False) -> bool:
        """Rebuild unless detached or a rebuild already ran this tick."""
        return self.scheduler.request(force_discover)

    def mark_dirty(self) -> None:
        self.scheduler.mark_dirty()

    def flush_if_dirty(self) -> bool:
        return self.scheduler.flush_if_dirty()

    def force_rebuild(self) -> None:
        """Drop all output and rebuild immediately, ignoring coalescing."""
        clear_output(self)
        self._rebuild(True)
        self.scheduler.rebuild_count += 1

    def discover(self) -> None:
        """Find item and shape children and recompute the total weight."""
        self.items.clear()
        self.total_item_proportion = 0

        for child in self.get_children(include_internal=False):
            if isinstance(child, ScatterItem):
                self.items.append(child)
                self.total_item_proportion += child.proportion

        self.domain.discover_shapes(self)

        if self.is_inside_tree():
            self.validation_changed.emit()

    def _rebuild(self, force_discover: bool) -> None:
        if force_discover:
            self.discover()

        prune_item_roots(self, self.items)

        if not self.items:
            logger.debug(f"{self.name}: no items, nothing to scatter")
            self.shape_changed.emit()
            return

        if self.domain.is_empty():
            logger.debug(f"{self.name}: domain is empty, nothing to scatter")
            self.shape_changed.emit()
            return

        self.transforms = self.modifier_stack.update(self.domain, self._seed)

        if self._use_instancing:
            def get_buffer(item, count):
                return get_or_create_multimesh(self, item, count)
        else:
            def get_buffer(item, count):
                return get_or_create_instance_group(self, item, count)

        counts = distribute_transforms(
            self.global_transform, self.transforms, self.items, get_buffer
        )
        self.instance_counts = {}
        for item, count in zip(self.items, counts):
            if count == 0:
                empty_item_output(self, item)
            self.instance_counts[item.name] = count

        logger.debug(
            f"{self.name}: {len(self.transforms)} transforms across "
            f"{len(self.items)} items -> {sum(counts)} instances"
        )
        self.shape_changed.emit()
        self.build_completed.emit()

    # -------------------------------------------------------------------------
    # Output access
    # -------------------------------------------------------------------------

    def get_instance_transforms(self, item: ScatterItem) -> NDArray[np.float64]:
        """World-space transforms of every output instance of ``item``."""
        output = self.find_child(OUTPUT_NAME)
        item_root = output.find_child(item.name) if output is not None else None
        if item_root is None:
            return np.empty((0, 4, 4))

        matrices = []
        for child in item_root.get_children():
            if isinstance(child, MultiMeshInstance):
                base = child.global_transform
                matrices.extend(base @ m for m in child.multimesh.drawn_transforms())
            elif isinstance(child, MeshInstance):
                matrices.append(child.global_transform)

        if not matrices:
            return np.empty((0, 4, 4))
        return np.stack(matrices)

    def to_trimesh(self) -> trimesh.Trimesh | None:
        """Bake all output instances into one world-space mesh."""
        parts = []
        for item in self.items:
            if item.mesh is None:
                continue
            for matrix in self.get_instance_transforms(item):
                part = item.mesh.copy()
                part.apply_transform(matrix)
                parts.append(part)

        if not parts:
            return None
        return trimesh.util.concatenate(parts)

    def stats(self) -> dict:
        """Return statistics about the last rebuild."""
        return {
            "seed": self._seed,
            "use_instancing": self._use_instancing,
            "transforms": len(self.transforms),
            "items": len(self.items),
            "total_item_proportion": self.total_item_proportion,
            "instances": dict(self.instance_counts),
            "rebuilds": self.scheduler.rebuild_count,
            "domain": self.domain.stats(),
        }

    def __repr__(self) -> str:
        return f"Scatter({self.name!r}, {len(self.items)} items, seed={self._seed})"
