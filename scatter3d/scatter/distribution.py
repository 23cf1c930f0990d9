"""Proportional distribution of a transform list across weighted items.

Each item receives a contiguous slice of the transform list sized
``round(proportion / total * N)``. Counts are rounded independently, so
their sum can exceed N; when the list runs out, the item being filled is
truncated to ``i - 1`` entries (the in-progress instance and the one before
it are dropped) and every later item receives nothing.

Rounding uses Python's ``round`` (half to even).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Protocol, Sequence

import numpy as np
from numpy.typing import NDArray

from ..scene.transform import affine_inverse

if TYPE_CHECKING:
    from .item import ScatterItem

logger = logging.getLogger(__name__)


class InstanceBuffer(Protocol):
    """Anything the distribution can write instances into."""

    def resize(self, count: int) -> None: ...

    def set_instance_transform(self, index: int, matrix: NDArray[np.float64]) -> None: ...

    def set_instance_color(self, index: int, color) -> None: ...


BufferFactory = Callable[["ScatterItem", int], "InstanceBuffer | None"]


def item_count(proportion: int, total_proportion: int, total_instances: int) -> int:
    """Ideal share of ``total_instances`` for one item."""
    return round(proportion / total_proportion * total_instances)


def allocate_counts(proportions: Sequence[int], total_instances: int) -> list[int]:
    """Return the number of instances each item ends up with.

    Matches the counts :func:`distribute_transforms` writes when every item
    gets a buffer. An item whose buffer factory returns None keeps its count
    here but is reported as 0 there.

    Args:
        proportions: Item weights in discovery order
        total_instances: Length of the transform list

    Returns:
        Final per-item counts, truncation applied
    """
    total = sum(proportions)
    counts = [0] * len(proportions)
    if total == 0:
        return counts

    offset = 0
    for index, proportion in enumerate(proportions):
        count = item_count(proportion, total, total_instances)
        if offset + count > total_instances:
            counts[index] = max(total_instances - offset - 1, 0)
            break
        counts[index] = count
        offset += count
    return counts


def instance_color(index: int, count: int) -> tuple[float, float, float, float]:
    """Grayscale ordinal color: 0 for the first instance, stepping by 1/count."""
    value = index / count
    return (value, value, value, 1.0)


def distribute_transforms(
    root_global: NDArray[np.float64],
    transforms: NDArray[np.float64],
    items: Sequence[ScatterItem],
    get_buffer: BufferFactory,
) -> list[int]:
    """Write each item's share of ``transforms`` into its instance buffer.

    Transforms are world space; they are post-processed by the item and
    written relative to ``root_global``.

    Args:
        root_global: Global transform of the scattering root
        transforms: (N, 4, 4) world-space placement matrices
        items: Items in discovery order
        get_buffer: Factory returning a buffer sized for ``count`` instances,
            or None when the item cannot be output (it is skipped but its
            share is still consumed)

    Returns:
        Per-item instance counts actually left in the buffers
    """
    total_instances = len(transforms)
    total_proportion = sum(item.proportion for item in items)
    written = [0] * len(items)
    if total_proportion == 0:
        return written

    inverse_root = affine_inverse(root_global)
    offset = 0

    for index, item in enumerate(items):
        count = item_count(item.proportion, total_proportion, total_instances)
        buffer = get_buffer(item, count)
        if buffer is None:
            logger.debug(f"No output buffer for {item.name}, skipping")
            offset += count
            continue

        for i in range(count):
            if offset + i >= total_instances:
                truncated = max(i - 1, 0)
                buffer.resize(truncated)
                written[index] = truncated
                logger.debug(
                    f"Transform list exhausted at {item.name}: kept {truncated}/{count}"
                )
                return written

            t = item.process_transform(transforms[offset + i])
            buffer.set_instance_transform(i, inverse_root @ t)
            buffer.set_instance_color(i, instance_color(i, count))

        written[index] = count
        offset += count

    return written
