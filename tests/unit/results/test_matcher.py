"""Unit tests for matching report entries to positions."""

from __future__ import annotations

from typing import List

from gradle_test_bridge.core.models import Position, PositionType, ReportEntry
from gradle_test_bridge.core.tree import PositionTree
from gradle_test_bridge.results.matcher import PositionMatcher


def _tree(*test_ids: str) -> PositionTree:
    positions: List[Position] = [Position("/src/Test.kt", PositionType.FILE, "/src/Test.kt")]
    positions.extend(Position(tid, PositionType.TEST, "/src/Test.kt") for tid in test_ids)
    return PositionTree(positions)


class TestPositionMatcher:
    """Tests for PositionMatcher."""

    def test_exact_match(self) -> None:
        """Test classname.name matches the test position."""
        tree = _tree("pkg.Foo.bar")
        position = PositionMatcher().match(tree, ReportEntry("pkg.Foo", "bar"))
        assert position is not None
        assert position.id == "pkg.Foo.bar"

    def test_parameterized_name_stripped(self) -> None:
        """Test parameter suffixes are ignored when matching."""
        tree = _tree("pkg.Foo.add")
        position = PositionMatcher().match(tree, ReportEntry("pkg.Foo", "add(int, int)"))
        assert position is not None
        assert position.id == "pkg.Foo.add"

    def test_parameterized_invocations_collapse(self) -> None:
        """Test distinct invocations of one method hit the same position."""
        tree = _tree("pkg.Foo.add")
        matcher = PositionMatcher()
        first = matcher.match(tree, ReportEntry("pkg.Foo", "add(1, 2)"))
        second = matcher.match(tree, ReportEntry("pkg.Foo", "add(3, 4)"))
        assert first is second

    def test_nested_class_dotted_fallback(self) -> None:
        """Test $ separated nested classes match dotted ids."""
        tree = _tree("pkg.Outer.Inner.test")
        position = PositionMatcher().match(tree, ReportEntry("pkg.Outer$Inner", "test"))
        assert position is not None
        assert position.id == "pkg.Outer.Inner.test"

    def test_raw_id_preferred_over_dotted(self) -> None:
        """Test the raw id wins even when the dotted form comes first in the tree."""
        tree = _tree("pkg.Outer.Inner.test", "pkg.Outer$Inner.test")
        position = PositionMatcher().match(tree, ReportEntry("pkg.Outer$Inner", "test"))
        assert position is not None
        assert position.id == "pkg.Outer$Inner.test"

    def test_only_test_positions_match(self) -> None:
        """Test namespace positions are never matched."""
        tree = PositionTree([
            Position("pkg.Foo", PositionType.NAMESPACE, "/src/Foo.kt"),
            Position("pkg.Foo.bar", PositionType.NAMESPACE, "/src/Foo.kt"),
        ])
        assert PositionMatcher().match(tree, ReportEntry("pkg.Foo", "bar")) is None

    def test_miss_recorded(self) -> None:
        """Test unmatched entries are recorded as misses."""
        matcher = PositionMatcher()
        entry = ReportEntry("pkg.Other", "x")
        assert matcher.match(_tree("pkg.Foo.bar"), entry) is None
        assert matcher.misses == [entry]
