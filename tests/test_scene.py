"""Tests for Transform3D, matrix helpers, Signal, Node and SceneTree."""

import numpy as np
import pytest

from scatter3d.scene.node import Node, Node3D, SceneTree
from scatter3d.scene.signals import Signal
from scatter3d.scene.transform import (
    Transform3D,
    affine_inverse,
    basis_scale,
    identity_stack,
    translation_matrix,
)


class TestTransform3D:
    """Test Transform3D functionality."""

    def test_default_transform(self):
        """Test default transform is identity-like."""
        t = Transform3D()
        assert t.position == (0.0, 0.0, 0.0)
        assert t.rotation == (0.0, 0.0, 0.0)
        assert t.scale == (1.0, 1.0, 1.0)

    def test_to_matrix_identity(self):
        """Test identity transform produces identity matrix."""
        np.testing.assert_array_almost_equal(Transform3D().to_matrix(), np.eye(4))

    def test_to_matrix_translation(self):
        """Test translation-only transform."""
        matrix = Transform3D(position=(10.0, 20.0, 30.0)).to_matrix()

        np.testing.assert_array_almost_equal(matrix[:3, 3], [10.0, 20.0, 30.0])

    def test_to_matrix_scale(self):
        """Test per-axis scale transform."""
        matrix = Transform3D(scale=(2.0, 3.0, 4.0)).to_matrix()

        np.testing.assert_array_almost_equal(np.diag(matrix), [2.0, 3.0, 4.0, 1.0])

    def test_to_matrix_rotation_z(self):
        """Test Z-rotation transform."""
        matrix = Transform3D(rotation=(0.0, 0.0, 90.0)).to_matrix()

        # 90 degree Z rotation: x -> y
        result = matrix @ np.array([1.0, 0.0, 0.0, 1.0])
        np.testing.assert_array_almost_equal(result[:3], [0.0, 1.0, 0.0])

    def test_apply_to_points(self):
        """Test applying transform to points."""
        t = Transform3D(position=(1.0, 2.0, 3.0), scale=(2.0, 2.0, 2.0))
        points = np.array([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]])

        result = t.apply_to_points(points)

        np.testing.assert_array_almost_equal(result, [[1.0, 2.0, 3.0], [3.0, 4.0, 5.0]])

    def test_from_matrix_roundtrip(self):
        """Test decomposing a matrix recovers the transform."""
        original = Transform3D(
            position=(1.0, -2.0, 3.0),
            rotation=(10.0, 20.0, 30.0),
            scale=(1.5, 2.0, 0.5),
        )

        restored = Transform3D.from_matrix(original.to_matrix())

        np.testing.assert_array_almost_equal(restored.position, original.position)
        np.testing.assert_array_almost_equal(restored.rotation, original.rotation)
        np.testing.assert_array_almost_equal(restored.scale, original.scale)

    def test_from_matrix_rejects_reflection(self):
        """Test a mirrored basis cannot be decomposed."""
        matrix = np.diag([-1.0, 1.0, 1.0, 1.0])

        with pytest.raises(ValueError, match="reflection"):
            Transform3D.from_matrix(matrix)

    def test_compose(self):
        """Test composition applies self first, then other."""
        move = Transform3D(position=(10.0, 0.0, 0.0))
        grow = Transform3D(scale=(2.0, 2.0, 2.0))

        combined = move.compose(grow)

        np.testing.assert_array_almost_equal(combined.position, [20.0, 0.0, 0.0])
        np.testing.assert_array_almost_equal(combined.scale, [2.0, 2.0, 2.0])

    def test_inverse(self):
        """Test inverse undoes the transform."""
        t = Transform3D(position=(5.0, 0.0, 0.0), rotation=(0.0, 0.0, 45.0))

        result = t.inverse().apply_to_points(t.apply_to_points([[1.0, 2.0, 3.0]]))

        np.testing.assert_array_almost_equal(result, [[1.0, 2.0, 3.0]])


class TestMatrixHelpers:
    """Test helpers operating on raw matrices and stacks."""

    def test_identity_stack(self):
        """Test the stack shape and contents."""
        stack = identity_stack(3)

        assert stack.shape == (3, 4, 4)
        np.testing.assert_array_equal(stack[2], np.eye(4))

    def test_affine_inverse(self):
        """Test the block inverse matches the general inverse."""
        matrix = Transform3D(
            position=(1.0, 2.0, 3.0), rotation=(30.0, 0.0, 60.0), scale=(2.0, 1.0, 0.5)
        ).to_matrix()

        np.testing.assert_array_almost_equal(affine_inverse(matrix), np.linalg.inv(matrix))

    def test_affine_inverse_stack(self):
        """Test inverting a stack of matrices at once."""
        stack = np.stack([translation_matrix((1.0, 0.0, 0.0)), translation_matrix((0.0, 2.0, 0.0))])

        result = affine_inverse(stack)

        np.testing.assert_array_almost_equal(result[:, :3, 3], [[-1.0, 0.0, 0.0], [0.0, -2.0, 0.0]])

    def test_basis_scale(self):
        """Test scale is recovered from a rotated basis."""
        matrix = Transform3D(rotation=(0.0, 45.0, 0.0), scale=(3.0, 1.0, 2.0)).to_matrix()

        np.testing.assert_array_almost_equal(basis_scale(matrix), [3.0, 1.0, 2.0])


class TestSignal:
    """Test Signal connection handling."""

    def test_emit_in_connection_order(self):
        """Test callbacks run in the order they were connected."""
        calls = []
        signal = Signal("test")
        signal.connect(lambda: calls.append("a"))
        signal.connect(lambda: calls.append("b"))

        signal.emit()

        assert calls == ["a", "b"]

    def test_connect_twice_is_noop(self):
        """Test a callback is stored once."""
        signal = Signal("test")
        callback = lambda: None  # noqa: E731
        signal.connect(callback)
        signal.connect(callback)

        assert len(signal) == 1

    def test_disconnect(self):
        """Test disconnected callbacks no longer run."""
        calls = []
        signal = Signal("test")
        signal.connect(calls.append)
        signal.disconnect(calls.append)

        signal.emit(1)

        assert calls == []
        assert not signal.is_connected(calls.append)


class TestNode:
    """Test node hierarchy and duplication."""

    def test_unique_child_names(self):
        """Test a name clash gets a numeric suffix."""
        parent = Node("Parent")
        parent.add_child(Node("Child"))
        second = parent.add_child(Node("Child"))
        third = parent.add_child(Node("Child"))

        assert second.name == "Child2"
        assert third.name == "Child3"

    def test_add_child_with_parent_raises(self):
        """Test a node cannot have two parents."""
        child = Node("Child")
        Node("A").add_child(child)

        with pytest.raises(ValueError, match="already has a parent"):
            Node("B").add_child(child)

    def test_get_children_excludes_internal(self):
        """Test internal children can be filtered out."""
        parent = Node("Parent")
        parent.add_child(Node("Visible"))
        parent.add_child(Node("Hidden"), internal=True)

        assert [c.name for c in parent.get_children(include_internal=False)] == ["Visible"]
        assert parent.get_child_count() == 2

    def test_global_transform(self):
        """Test global transform chains through 3D ancestors."""
        parent = Node3D("Parent")
        parent.position = (1.0, 0.0, 0.0)
        child = parent.add_child(Node3D("Child"))
        child.position = (0.0, 2.0, 0.0)

        np.testing.assert_array_almost_equal(child.global_transform[:3, 3], [1.0, 2.0, 0.0])

    def test_duplicate_skips_internal_children(self):
        """Test duplicates copy only non-internal children."""
        parent = Node3D("Parent")
        parent.add_child(Node3D("Kept"))
        parent.add_child(Node3D("Output"), internal=True)

        dup = parent.duplicate()

        assert [c.name for c in dup.get_children()] == ["Kept"]
        assert dup.duplicated_from is parent
        assert dup.parent is None

    def test_duplicate_shares_exported_values(self):
        """Test exported attributes are copied by reference."""
        node = Node3D("Node")
        node.position = (3.0, 0.0, 0.0)

        dup = node.duplicate()

        assert dup._transform is node._transform

    def test_lifecycle_order(self):
        """Test children are ready before their parent."""
        events = []

        class Tracked(Node):
            def _enter_tree(self):
                events.append(("enter", self.name))

            def _ready(self):
                events.append(("ready", self.name))

        tree = SceneTree()
        parent = Tracked("Parent")
        parent.add_child(Tracked("Child"))
        tree.root.add_child(parent)

        assert events == [
            ("enter", "Parent"),
            ("enter", "Child"),
            ("ready", "Child"),
            ("ready", "Parent"),
        ]

    def test_transform_notification_only_in_tree(self):
        """Test transform_changed fires only for attached nodes."""
        calls = []
        node = Node3D("Node")
        node.transform_changed.connect(lambda: calls.append(True))

        node.position = (1.0, 0.0, 0.0)
        assert calls == []

        SceneTree().root.add_child(node)
        node.position = (2.0, 0.0, 0.0)
        assert calls == [True]

    def test_remove_child_exits_tree(self):
        """Test removed nodes leave the tree."""
        tree = SceneTree()
        node = tree.root.add_child(Node("Node"))

        tree.root.remove_child(node)

        assert not node.is_inside_tree()
        assert node.parent is None


class TestSceneTree:
    """Test the tick scheduling primitive."""

    def test_after_tick_runs_once(self):
        """Test deferred callbacks run on the next tick only."""
        calls = []
        tree = SceneTree()
        tree.call_after_tick(lambda: calls.append(tree.frame))

        tree.tick(3)

        assert calls == [1]
        assert tree.frame == 3

    def test_after_tick_before_process(self):
        """Test deferred callbacks run before process callbacks."""
        calls = []
        tree = SceneTree()
        tree.add_process_callback(lambda: calls.append("process"))
        tree.call_after_tick(lambda: calls.append("after"))

        tree.tick()

        assert calls == ["after", "process"]

    def test_remove_process_callback(self):
        """Test removed process callbacks stop running."""
        calls = []
        tree = SceneTree()

        def callback():
            calls.append(True)

        tree.add_process_callback(callback)
        tree.remove_process_callback(callback)
        tree.tick()

        assert calls == []
