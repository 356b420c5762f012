"""Matching report entries to tree positions."""

from __future__ import annotations

from typing import Dict, List, Optional

from gradle_test_bridge.core.logging import get_logger
from gradle_test_bridge.core.models import Position, PositionType, ReportEntry
from gradle_test_bridge.core.tree import PositionTree

LOGGER = get_logger(__name__)


class PositionMatcher:
    """Finds the test position a JUnit test case belongs to.

    Candidate ids are tried in priority order and the first one naming a
    test position wins. When the raw JUnit 4 id and the nested-class form
    would match different positions, the raw id wins regardless of where
    either position sits in the tree.

    Parameterized invocations (``add(1, 2)``, ``add(3, 4)``) strip to
    the same method name and therefore collapse onto one position.
    """

    def __init__(self) -> None:
        self.misses: List[ReportEntry] = []

    def match(self, tree: PositionTree, entry: ReportEntry) -> Optional[Position]:
        candidates = entry.candidate_ids()
        tests: Dict[str, Position] = {}
        for position in tree.of_type(PositionType.TEST):
            tests.setdefault(position.id, position)

        # Candidate order decides, not tree order: the raw id beats the
        # normalized one even when the normalized position comes first.
        for candidate in candidates:
            position = tests.get(candidate)
            if position is not None:
                return position

        LOGGER.debug(
            f"No position for test case {entry.class_name}.{entry.test_name} "
            f"(tried {', '.join(candidates)})"
        )
        self.misses.append(entry)
        return None
