"""Ordered modifier pipeline that produces a Scatter node's transform list."""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Iterator

import numpy as np
from numpy.typing import NDArray

from ..scene.signals import Signal
from .modifiers import BaseModifier, get_modifier

if TYPE_CHECKING:
    from ..domain.domain import Domain

logger = logging.getLogger(__name__)


class ModifierStack:
    """An ordered list of modifiers.

    Signals:
        value_changed: a modifier parameter changed
        stack_changed: modifiers were added, removed or reordered
    """

    def __init__(self, modifiers: list[BaseModifier] | None = None):
        self.value_changed = Signal("value_changed")
        self.stack_changed = Signal("stack_changed")
        self.modifiers: list[BaseModifier] = []
        for modifier in modifiers or []:
            self._attach(modifier)

    def __len__(self) -> int:
        return len(self.modifiers)

    def __iter__(self) -> Iterator[BaseModifier]:
        return iter(self.modifiers)

    def update(self, domain: Domain, seed: int = 0) -> NDArray[np.float64]:
        """Run every enabled modifier in order.

        Args:
            domain: Placement domain with discovered shapes
            seed: Seed for the random generator shared by all modifiers

        Returns:
            (N, 4, 4) world-space transform list
        """
        rng = np.random.default_rng(seed)
        transforms = np.empty((0, 4, 4), dtype=np.float64)

        for modifier in self.modifiers:
            if not modifier.enabled:
                continue
            transforms = modifier.process(transforms, domain, rng)
            logger.debug(f"{modifier.name}: {len(transforms)} transforms")

        return transforms

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    def add(self, modifier: BaseModifier | str, **params) -> BaseModifier:
        """Append a modifier instance or create one by name."""
        if isinstance(modifier, str):
            modifier = get_modifier(modifier, **params)
        self._attach(modifier)
        self.stack_changed.emit()
        return modifier

    def remove(self, modifier: BaseModifier) -> None:
        modifier.changed.disconnect(self._on_modifier_changed)
        self.modifiers.remove(modifier)
        self.stack_changed.emit()

    def move(self, old_index: int, new_index: int) -> None:
        modifier = self.modifiers.pop(old_index)
        self.modifiers.insert(new_index, modifier)
        self.stack_changed.emit()

    def clear(self) -> None:
        for modifier in self.modifiers:
            modifier.changed.disconnect(self._on_modifier_changed)
        self.modifiers.clear()
        self.stack_changed.emit()

    def duplicate(self) -> ModifierStack:
        """Return an independent deep copy with no listeners attached."""
        return ModifierStack([copy.deepcopy(modifier) for modifier in self.modifiers])

    def _attach(self, modifier: BaseModifier) -> None:
        modifier.changed.connect(self._on_modifier_changed)
        self.modifiers.append(modifier)

    def _on_modifier_changed(self) -> None:
        self.value_changed.emit()

    def __repr__(self) -> str:
        names = ", ".join(modifier.name for modifier in self.modifiers)
        return f"ModifierStack([{names}])"
