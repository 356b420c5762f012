"""Unit tests for the position tree."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import pytest

from gradle_test_bridge.core.errors import TreeError
from gradle_test_bridge.core.models import Position, PositionType
from gradle_test_bridge.core.tree import PositionTree, is_nested_id


def _tree_data() -> Dict[str, Any]:
    return {
        "id": "/src/FooTest.kt",
        "type": "file",
        "path": "/src/FooTest.kt",
        "children": [
            {
                "id": "com.example.FooTest",
                "type": "namespace",
                "children": [
                    {"id": "com.example.FooTest.a", "type": "test"},
                    {"id": "com.example.FooTest.b", "type": "test"},
                ],
            },
        ],
    }



def _sibling_tree_data() -> Dict[str, Any]:
    return {
        "id": "/src/pkg/FooTest.kt",
        "type": "file",
        "children": [
            {
                "id": "pkg.Foo",
                "type": "namespace",
                "children": [{"id": "pkg.Foo.a", "type": "test"}],
            },
            {
                "id": "pkg.FooBar",
                "type": "namespace",
                "children": [
                    {"id": "pkg.FooBar.b", "type": "test"},
                    {"id": "pkg.FooBar.bc", "type": "test"},
                ],
            },
        ],
    }

class TestPositionTree:
    """Tests for PositionTree."""

    def test_empty_tree_rejected(self) -> None:
        """Test an empty position list raises TreeError."""
        with pytest.raises(TreeError):
            PositionTree([])

    def test_from_dict_preorder(self) -> None:
        """Test positions are flattened in pre-order."""
        tree = PositionTree.from_dict(_tree_data())
        assert [p.id for p in tree] == [
            "/src/FooTest.kt",
            "com.example.FooTest",
            "com.example.FooTest.a",
            "com.example.FooTest.b",
        ]
        assert tree.data().type == PositionType.FILE
        assert len(tree) == 4

    def test_children_inherit_path(self) -> None:
        """Test children without a path use their parent's path."""
        tree = PositionTree.from_dict(_tree_data())
        assert all(p.path == "/src/FooTest.kt" for p in tree)

    def test_file_without_path_uses_id(self) -> None:
        """Test a file node's id doubles as its path."""
        tree = PositionTree.from_dict({"id": "/src/A.java", "type": "file"})
        assert tree.data().path == "/src/A.java"

    def test_invalid_type_rejected(self) -> None:
        """Test unknown position types raise TreeError."""
        with pytest.raises(TreeError):
            PositionTree.from_dict({"id": "x", "type": "module"})

    def test_missing_id_rejected(self) -> None:
        """Test nodes without an id raise TreeError."""
        with pytest.raises(TreeError):
            PositionTree.from_dict({"type": "test"})

    def test_of_type(self) -> None:
        """Test filtering positions by type."""
        tree = PositionTree.from_dict(_tree_data())
        assert [p.id for p in tree.of_type(PositionType.TEST)] == [
            "com.example.FooTest.a",
            "com.example.FooTest.b",
        ]

    def test_get_unknown_returns_none(self) -> None:
        """Test get returns None for unknown ids."""
        tree = PositionTree.from_dict(_tree_data())
        assert tree.get("nope") is None

    def test_subtree_of_namespace(self) -> None:
        """Test subtree of a namespace contains it and its tests."""
        tree = PositionTree.from_dict(_tree_data())
        sub = tree.subtree("com.example.FooTest")
        assert sub.data().id == "com.example.FooTest"
        assert [p.id for p in sub] == [
            "com.example.FooTest",
            "com.example.FooTest.a",
            "com.example.FooTest.b",
        ]

    def test_subtree_of_file_uses_path(self) -> None:
        """Test subtree of a file collects positions by path."""
        tree = PositionTree.from_dict(_tree_data())
        sub = tree.subtree("/src/FooTest.kt")
        assert len(sub) == 4

    def test_subtree_excludes_sibling_with_common_prefix(self) -> None:
        """Test a namespace subtree leaves out classes whose name only starts with it."""
        tree = PositionTree.from_dict(_sibling_tree_data())
        sub = tree.subtree("pkg.Foo")
        assert [p.id for p in sub] == ["pkg.Foo", "pkg.Foo.a"]

    def test_subtree_of_test_excludes_longer_test_names(self) -> None:
        """Test a test subtree does not pick up tests sharing its name prefix."""
        tree = PositionTree.from_dict(_sibling_tree_data())
        sub = tree.subtree("pkg.FooBar.b")
        assert [p.id for p in sub] == ["pkg.FooBar.b"]

    def test_subtree_keeps_nesting(self) -> None:
        """Test a subtree can be narrowed again."""
        tree = PositionTree.from_dict(_sibling_tree_data())
        sub = tree.subtree("/src/pkg/FooTest.kt").subtree("pkg.FooBar")
        assert [p.id for p in sub] == ["pkg.FooBar", "pkg.FooBar.b", "pkg.FooBar.bc"]

    def test_flat_subtree_excludes_sibling_with_common_prefix(self) -> None:
        """Test trees without nesting information select by dotted id segments."""
        tree = PositionTree([
            Position(id="pkg.Foo", type=PositionType.NAMESPACE, path="/src/Foo.kt"),
            Position(id="pkg.Foo.a", type=PositionType.TEST, path="/src/Foo.kt"),
            Position(id="pkg.FooBar", type=PositionType.NAMESPACE, path="/src/Foo.kt"),
            Position(id="pkg.FooBar.b", type=PositionType.TEST, path="/src/Foo.kt"),
        ])
        sub = tree.subtree("pkg.Foo")
        assert [p.id for p in sub] == ["pkg.Foo", "pkg.Foo.a"]

    def test_mismatched_depths_rejected(self) -> None:
        """Test depths must line up with positions."""
        position = Position(id="pkg.Foo", type=PositionType.NAMESPACE, path="")
        with pytest.raises(TreeError):
            PositionTree([position], depths=[0, 1])

    def test_subtree_unknown_position(self) -> None:
        """Test subtree of an unknown id raises TreeError."""
        tree = PositionTree.from_dict(_tree_data())
        with pytest.raises(TreeError):
            tree.subtree("com.example.Missing")

    def test_from_json(self, tmp_path: Path) -> None:
        """Test loading a tree from a JSON file."""
        tree_file = tmp_path / "tree.json"
        tree_file.write_text(json.dumps(_tree_data()))
        tree = PositionTree.from_json(tree_file)
        assert tree.data().id == "/src/FooTest.kt"

    def test_from_json_invalid(self, tmp_path: Path) -> None:
        """Test invalid JSON raises TreeError."""
        tree_file = tmp_path / "tree.json"
        tree_file.write_text("{not json")
        with pytest.raises(TreeError):
            PositionTree.from_json(tree_file)

    def test_from_json_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file raises TreeError."""
        with pytest.raises(TreeError):
            PositionTree.from_json(tmp_path / "missing.json")


class TestIsNestedId:
    """Tests for is_nested_id."""

    def test_dotted_child(self) -> None:
        """Test a dotted extension is nested."""
        assert is_nested_id("pkg.Foo.a", "pkg.Foo")

    def test_common_prefix_is_not_nested(self) -> None:
        """Test a longer class name is not nested."""
        assert not is_nested_id("pkg.FooBar", "pkg.Foo")

    def test_same_id_is_not_nested(self) -> None:
        """Test an id is not nested in itself."""
        assert not is_nested_id("pkg.Foo", "pkg.Foo")
