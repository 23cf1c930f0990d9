"""Tests for proportional distribution of transforms across items."""

import numpy as np
import pytest

from scatter3d.scatter.distribution import (
    allocate_counts,
    distribute_transforms,
    instance_color,
    item_count,
)
from scatter3d.scatter.item import ScatterItem
from scatter3d.scatter.multimesh import MultiMesh
from scatter3d.scene.transform import identity_stack, translation_matrix


def make_transforms(count: int) -> np.ndarray:
    """Transforms whose X translation equals their index."""
    transforms = identity_stack(count)
    transforms[:, 0, 3] = np.arange(count)
    return transforms


def make_items(*proportions: int) -> list[ScatterItem]:
    return [
        ScatterItem(f"Item{index}", proportion=proportion)
        for index, proportion in enumerate(proportions)
    ]


def make_buffers(items):
    """Return a buffer dict and a factory that resizes and returns them."""
    buffers = {item.name: MultiMesh() for item in items}

    def get_buffer(item, count):
        buffers[item.name].resize(count)
        return buffers[item.name]

    return buffers, get_buffer


class TestAllocateCounts:
    """Test the pure count computation."""

    def test_equal_weights_round_half_to_even(self):
        """Test A(1), B(1), N=5 -> 2.5 rounds to 2 for both."""
        assert allocate_counts([1, 1], 5) == [2, 2]

    def test_exact_split(self):
        """Test weights 3 and 1 over 4 transforms split exactly."""
        assert allocate_counts([3, 1], 4) == [3, 1]

    def test_no_transforms(self):
        """Test a single item with no transforms gets nothing."""
        assert allocate_counts([1], 0) == [0]

    def test_no_items(self):
        """Test an empty item list."""
        assert allocate_counts([], 10) == []

    def test_truncation_drops_in_progress_instance(self):
        """Test overshoot truncates the overflowing item to i - 1."""
        # 3.5 rounds to 4 for both: B overflows at i=3 and keeps 2
        assert allocate_counts([1, 1], 7) == [4, 2]

    def test_items_after_truncation_receive_zero(self):
        """Test every item after the overflowing one gets nothing."""
        # 4/7 rounds to 1 for each of the 7 items; E overflows at i=0
        assert allocate_counts([1] * 7, 4) == [1, 1, 1, 1, 0, 0, 0]

    @pytest.mark.parametrize("proportions,total", [
        ([1, 1], 7),
        ([1, 2, 3], 17),
        ([5, 5, 1, 1], 9),
        ([1] * 7, 4),
        ([100, 30, 7], 1000),
    ])
    def test_sum_never_exceeds_total(self, proportions, total):
        """Test the allocated sum stays within the transform count."""
        assert sum(allocate_counts(proportions, total)) <= total

    def test_item_count(self):
        """Test the ideal share of a single item."""
        assert item_count(3, 4, 4) == 3
        assert item_count(1, 3, 10) == 3
        assert item_count(2, 3, 10) == 7


class TestDistributeTransforms:
    """Test writing shares into instance buffers."""

    def test_contiguous_slices(self):
        """Test each item receives a contiguous slice in discovery order."""
        items = make_items(3, 1)
        buffers, get_buffer = make_buffers(items)

        written = distribute_transforms(np.eye(4), make_transforms(4), items, get_buffer)

        assert written == [3, 1]
        np.testing.assert_array_equal(buffers["Item0"].transforms[:, 0, 3], [0, 1, 2])
        np.testing.assert_array_equal(buffers["Item1"].transforms[:, 0, 3], [3])

    def test_half_split_leaves_remainder_unused(self):
        """Test A(1), B(1), N=5 places 4 instances."""
        items = make_items(1, 1)
        buffers, get_buffer = make_buffers(items)

        written = distribute_transforms(np.eye(4), make_transforms(5), items, get_buffer)

        assert written == [2, 2]
        assert buffers["Item0"].instance_count == 2
        assert buffers["Item1"].instance_count == 2
        np.testing.assert_array_equal(buffers["Item1"].transforms[:, 0, 3], [2, 3])

    def test_empty_transform_list(self):
        """Test a single item with N=0 ends with an empty buffer."""
        items = make_items(1)
        buffers, get_buffer = make_buffers(items)

        written = distribute_transforms(np.eye(4), make_transforms(0), items, get_buffer)

        assert written == [0]
        assert buffers["Item0"].instance_count == 0

    def test_truncation_resizes_buffer(self):
        """Test the overflowing buffer is cut to i - 1 entries."""
        items = make_items(1, 1)
        buffers, get_buffer = make_buffers(items)

        written = distribute_transforms(np.eye(4), make_transforms(7), items, get_buffer)

        assert written == [4, 2]
        assert buffers["Item1"].instance_count == 2
        np.testing.assert_array_equal(buffers["Item1"].transforms[:, 0, 3], [4, 5])

    def test_truncation_stops_distribution(self):
        """Test later items are not visited after truncation."""
        items = make_items(*([1] * 7))
        requested = []
        buffers = {item.name: MultiMesh() for item in items}

        def get_buffer(item, count):
            requested.append(item.name)
            buffers[item.name].resize(count)
            return buffers[item.name]

        written = distribute_transforms(np.eye(4), make_transforms(4), items, get_buffer)

        assert written == [1, 1, 1, 1, 0, 0, 0]
        assert requested == ["Item0", "Item1", "Item2", "Item3", "Item4"]
        assert buffers["Item4"].instance_count == 0

    def test_matches_allocate_counts(self):
        """Test written counts agree with the pure allocation."""
        proportions = [5, 3, 2, 1]
        items = make_items(*proportions)
        _, get_buffer = make_buffers(items)

        written = distribute_transforms(np.eye(4), make_transforms(23), items, get_buffer)

        assert written == allocate_counts(proportions, 23)

    def test_transforms_are_local_to_root(self):
        """Test world transforms are converted by the root's inverse."""
        items = make_items(1)
        buffers, get_buffer = make_buffers(items)
        root = translation_matrix((10.0, 0.0, 0.0))

        distribute_transforms(root, make_transforms(3), items, get_buffer)

        np.testing.assert_array_almost_equal(
            buffers["Item0"].transforms[:, 0, 3], [-10.0, -9.0, -8.0]
        )

    def test_item_post_processing_applied(self):
        """Test the item's own transform processing is applied."""
        items = [ScatterItem("Big", proportion=1, source_scale_multiplier=2.0)]
        buffers, get_buffer = make_buffers(items)

        distribute_transforms(np.eye(4), make_transforms(2), items, get_buffer)

        np.testing.assert_array_almost_equal(
            np.diag(buffers["Big"].transforms[0]), [2.0, 2.0, 2.0, 1.0]
        )

    def test_grayscale_ordinal_colors(self):
        """Test colors step from 0 by 1/count."""
        items = make_items(1)
        buffers, get_buffer = make_buffers(items)

        distribute_transforms(np.eye(4), make_transforms(4), items, get_buffer)

        np.testing.assert_array_almost_equal(
            buffers["Item0"].colors,
            [
                [0.0, 0.0, 0.0, 1.0],
                [0.25, 0.25, 0.25, 1.0],
                [0.5, 0.5, 0.5, 1.0],
                [0.75, 0.75, 0.75, 1.0],
            ],
        )

    def test_missing_buffer_skips_item(self):
        """Test an item without a buffer still consumes its share."""
        items = make_items(1, 1)
        buffers = {"Item1": MultiMesh()}

        def get_buffer(item, count):
            if item.name not in buffers:
                return None
            buffers[item.name].resize(count)
            return buffers[item.name]

        written = distribute_transforms(np.eye(4), make_transforms(4), items, get_buffer)

        assert written == [0, 2]
        np.testing.assert_array_equal(buffers["Item1"].transforms[:, 0, 3], [2, 3])

    def test_missing_buffer_differs_from_allocation(self):
        """Test a skipped item keeps its count only in the pure allocation."""
        items = make_items(2, 1)

        written = distribute_transforms(
            np.eye(4), make_transforms(6), items, lambda item, count: None
        )

        assert written == [0, 0]
        assert allocate_counts([2, 1], 6) == [4, 2]

    def test_idempotent(self):
        """Test distributing twice yields identical buffers."""
        items = make_items(2, 1)
        buffers, get_buffer = make_buffers(items)
        transforms = make_transforms(9)

        distribute_transforms(np.eye(4), transforms, items, get_buffer)
        first = {name: buf.transforms.copy() for name, buf in buffers.items()}
        distribute_transforms(np.eye(4), transforms, items, get_buffer)

        for name, buf in buffers.items():
            np.testing.assert_array_equal(buf.transforms, first[name])


class TestInstanceColor:
    """Test the ordinal color helper."""

    def test_first_instance_is_black(self):
        """Test index 0 maps to black with full alpha."""
        assert instance_color(0, 5) == (0.0, 0.0, 0.0, 1.0)

    def test_step(self):
        """Test the value is index / count."""
        assert instance_color(1, 4) == (0.25, 0.25, 0.25, 1.0)
