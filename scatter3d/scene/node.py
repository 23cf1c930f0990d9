"""Minimal node tree runtime.

The scattering nodes plug into this runtime the same way an editor plugin
plugs into a game engine: the tree owns lifecycle (enter/exit), parenting,
transform propagation and the per-tick scheduling primitive. Only the
seams the scatter system needs are provided.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator

import numpy as np
from numpy.typing import NDArray

from .signals import Signal
from .transform import Transform3D

logger = logging.getLogger(__name__)


class Node:
    """A named tree node with parent/child links.

    Subclasses list instance attributes in ``_exported`` to have them copied
    by :meth:`duplicate`. Exported values are copied by reference, matching
    how an engine duplicates resource properties.
    """

    _exported: tuple[str, ...] = ()

    def __init__(self, name: str = ""):
        self.name = name or type(self).__name__
        self.parent: Node | None = None
        self.internal = False
        self.duplicated_from: Node | None = None
        self._children: list[Node] = []
        self._tree: SceneTree | None = None

        self.tree_entered = Signal("tree_entered")
        self.tree_exiting = Signal("tree_exiting")
        self.child_added = Signal("child_added")
        self.child_removed = Signal("child_removed")

    # -------------------------------------------------------------------------
    # Hierarchy
    # -------------------------------------------------------------------------

    def add_child(self, child: Node, internal: bool = False) -> Node:
        """Attach ``child`` as the last child of this node.

        Internal children are runtime output: skipped by :meth:`duplicate`.
        """
        if child.parent is not None:
            raise ValueError(f"{child.name} already has a parent ({child.parent.name})")

        child.parent = self
        child.internal = internal
        child.name = self._unique_child_name(child.name)
        self._children.append(child)

        if self._tree is not None:
            child._propagate_enter_tree(self._tree)

        self._on_child_added(child)
        self.child_added.emit(child)
        return child

    def remove_child(self, child: Node) -> None:
        if child.parent is not self:
            raise ValueError(f"{child.name} is not a child of {self.name}")

        if child._tree is not None:
            child._propagate_exit_tree()

        self._children.remove(child)
        child.parent = None
        self._on_child_removed(child)
        self.child_removed.emit(child)

    def free(self) -> None:
        """Detach this node from its parent and drop its subtree."""
        if self.parent is not None:
            self.parent.remove_child(self)
        for child in list(self._children):
            child.free()

    def get_children(self, include_internal: bool = True) -> list[Node]:
        if include_internal:
            return list(self._children)
        return [child for child in self._children if not child.internal]

    def get_child_count(self) -> int:
        return len(self._children)

    def find_child(self, name: str) -> Node | None:
        for child in self._children:
            if child.name == name:
                return child
        return None

    def iter_descendants(self) -> Iterator[Node]:
        for child in self._children:
            yield child
            yield from child.iter_descendants()

    def _unique_child_name(self, name: str) -> str:
        taken = {child.name for child in self._children}
        if name not in taken:
            return name
        index = 2
        while f"{name}{index}" in taken:
            index += 1
        return f"{name}{index}"

    def get_path(self) -> str:
        if self.parent is None:
            return f"/{self.name}"
        return f"{self.parent.get_path()}/{self.name}"

    # -------------------------------------------------------------------------
    # Tree lifecycle
    # -------------------------------------------------------------------------

    def is_inside_tree(self) -> bool:
        return self._tree is not None

    def get_tree(self) -> SceneTree | None:
        return self._tree

    def _propagate_enter_tree(self, tree: SceneTree) -> None:
        self._tree = tree
        self._enter_tree()
        self.tree_entered.emit()
        for child in list(self._children):
            child._propagate_enter_tree(tree)
        self._ready()

    def _propagate_exit_tree(self) -> None:
        for child in list(self._children):
            child._propagate_exit_tree()
        self.tree_exiting.emit()
        self._exit_tree()
        self._tree = None

    def _enter_tree(self) -> None:
        pass

    def _ready(self) -> None:
        pass

    def _exit_tree(self) -> None:
        pass

    def _on_child_added(self, child: Node) -> None:
        pass

    def _on_child_removed(self, child: Node) -> None:
        pass

    # -------------------------------------------------------------------------
    # Duplication
    # -------------------------------------------------------------------------

    def duplicate(self) -> Node:
        """Return a detached copy of this node and its non-internal subtree."""
        dup = type(self)(name=self.name)
        for attr in self._exported:
            dup.__dict__[attr] = self.__dict__[attr]
        dup.duplicated_from = self

        for child in self.get_children(include_internal=False):
            dup.add_child(child.duplicate())
        return dup

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class Node3D(Node):
    """A node with a local transform and a derived global transform."""

    _exported = ("_transform",)

    def __init__(self, name: str = ""):
        super().__init__(name)
        self._transform: NDArray[np.float64] = np.eye(4, dtype=np.float64)
        self.transform_changed = Signal("transform_changed")

    @property
    def transform(self) -> NDArray[np.float64]:
        """Local 4x4 transform relative to the nearest Node3D ancestor."""
        return self._transform

    @transform.setter
    def transform(self, value: NDArray[np.float64] | Transform3D) -> None:
        if isinstance(value, Transform3D):
            value = value.to_matrix()
        self._transform = np.array(value, dtype=np.float64).reshape(4, 4)
        self.notify_transform_changed()

    @property
    def position(self) -> NDArray[np.float64]:
        return self._transform[:3, 3].copy()

    @position.setter
    def position(self, value) -> None:
        matrix = self._transform.copy()
        matrix[:3, 3] = value
        self.transform = matrix

    @property
    def global_transform(self) -> NDArray[np.float64]:
        """World-space 4x4 transform."""
        node = self.parent
        while node is not None and not isinstance(node, Node3D):
            node = node.parent
        if node is None:
            return self._transform.copy()
        return node.global_transform @ self._transform

    def notify_transform_changed(self) -> None:
        """Propagate a transform change to this node and its 3D descendants."""
        if self._tree is None:
            return
        self._on_transform_changed()
        self.transform_changed.emit()
        for child in self._children:
            if isinstance(child, Node3D):
                child.notify_transform_changed()

    def _on_transform_changed(self) -> None:
        pass


class SceneTree:
    """Owner of the node tree and of the per-tick scheduling primitive.

    Each :meth:`tick` first resumes everything that waited for the next
    tick (:meth:`call_after_tick`), then runs the registered process
    callbacks in registration order.
    """

    def __init__(self, root: Node | None = None):
        self.frame = 0
        self.root = root or Node("root")
        self._after_tick: list[Callable[[], Any]] = []
        self._process_callbacks: list[Callable[[], Any]] = []
        self.root._propagate_enter_tree(self)

    def call_after_tick(self, callback: Callable[[], Any]) -> None:
        """Run ``callback`` once, when the current tick completes."""
        self._after_tick.append(callback)

    def add_process_callback(self, callback: Callable[[], Any]) -> None:
        if callback not in self._process_callbacks:
            self._process_callbacks.append(callback)

    def remove_process_callback(self, callback: Callable[[], Any]) -> None:
        if callback in self._process_callbacks:
            self._process_callbacks.remove(callback)

    def tick(self, count: int = 1) -> None:
        for _ in range(count):
            self.frame += 1
            pending, self._after_tick = self._after_tick, []
            for callback in pending:
                callback()
            for callback in list(self._process_callbacks):
                callback()
        logger.debug(f"Tree advanced to frame {self.frame}")
