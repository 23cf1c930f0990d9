"""Per-tick rebuild coalescing.

A rebuild runs synchronously on the first request of a tick; later requests
in the same tick are dropped. The in-flight flag clears when the tree
finishes the current tick.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from ..scene.node import Node

logger = logging.getLogger(__name__)


class RebuildScheduler:
    """Runs at most one rebuild per scene tree tick.

    Attributes:
        in_flight: A rebuild ran during the current tick
        dirty: A rebuild was requested through :meth:`mark_dirty`
        rebuild_count: Number of rebuilds executed so far
    """

    def __init__(self, node: Node, rebuild: Callable[[bool], None]):
        self.node = node
        self._rebuild = rebuild
        self.in_flight = False
        self.dirty = False
        self.rebuild_count = 0

    def request(self, force_discover: bool = False) -> bool:
        """Rebuild now unless detached or already rebuilt this tick.

        Returns:
            True if a rebuild ran
        """
        tree = self.node.get_tree()
        if tree is None:
            return False

        if self.in_flight:
            logger.debug(f"{self.node.name}: rebuild coalesced")
            return False

        self.in_flight = True
        # Partial rebuilds are disabled, every rebuild rediscovers
        force_discover = True
        try:
            self._rebuild(force_discover)
            self.rebuild_count += 1
        finally:
            tree.call_after_tick(self._clear_in_flight)
        return True

    def mark_dirty(self) -> None:
        self.dirty = True

    def flush_if_dirty(self) -> bool:
        """Called by the host once per tick."""
        if not self.dirty:
            return False
        self.dirty = False
        return self.request(True)

    def _clear_in_flight(self) -> None:
        self.in_flight = False
