"""Read-only position tree handed over by the test discovery collaborator."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from gradle_test_bridge.core.errors import TreeError
from gradle_test_bridge.core.models import Position, PositionType


class PositionTree:
    """A subtree of positions rooted at the position the user selected.

    Positions are kept in pre-order, which is the order discovery produced
    them in and the order result matching relies on.
    """

    def __init__(self, positions: List[Position], depths: Optional[List[int]] = None):
        if not positions:
            raise TreeError("Position tree is empty")
        if depths is not None and len(depths) != len(positions):
            raise TreeError("Position tree depths do not match its positions")
        self._positions = list(positions)
        self._depths = list(depths) if depths is not None else None

    def data(self) -> Position:
        """Return the root position."""
        return self._positions[0]

    def iter(self) -> Iterator[Position]:
        """Iterate over all positions in input order."""
        return iter(self._positions)

    def __iter__(self) -> Iterator[Position]:
        return self.iter()

    def __len__(self) -> int:
        return len(self._positions)

    def get(self, position_id: str) -> Optional[Position]:
        for position in self._positions:
            if position.id == position_id:
                return position
        return None

    def of_type(self, position_type: PositionType) -> List[Position]:
        return [p for p in self._positions if p.type == position_type]

    def subtree(self, position_id: str) -> "PositionTree":
        """Return the tree restricted to ``position_id`` and its descendants.

        Trees built by :meth:`from_dict` know their nesting and keep exactly
        the nodes below the root. Flat trees fall back to ids: descendants of
        a namespace or test extend its id by a ``.`` segment, and a file root
        keeps every position with its path (file ids are paths and do not
        prefix namespace ids).
        """
        root = self.get(position_id)
        if root is None:
            raise TreeError(f"Unknown position: {position_id}")

        index = self._positions.index(root)
        if self._depths is not None:
            depth = self._depths[index]
            end = index + 1
            while end < len(self._positions) and self._depths[end] > depth:
                end += 1
            return PositionTree(
                self._positions[index:end],
                depths=[d - depth for d in self._depths[index:end]],
            )

        if root.type == PositionType.FILE:
            members = [p for p in self._positions if p.path == root.path]
            members.remove(root)
            return PositionTree([root] + members)
        return PositionTree(
            [root] + [p for p in self._positions if is_nested_id(p.id, root.id)]
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PositionTree":
        """Build a tree from nested ``{"id", "type", "path", "children"}`` dicts."""
        positions: List[Position] = []
        depths: List[int] = []
        _flatten(data, positions, depths, parent_path=None, depth=0)
        return cls(positions, depths=depths)

    @classmethod
    def from_json(cls, source: Union[str, Path]) -> "PositionTree":
        """Load a tree from a JSON file."""
        try:
            with open(source, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as e:
            raise TreeError(f"Cannot read position tree {source}: {e}") from e
        if not isinstance(data, dict):
            raise TreeError("Position tree JSON must be an object")
        return cls.from_dict(data)


def is_nested_id(candidate_id: str, parent_id: str) -> bool:
    """True if ``candidate_id`` is ``parent_id`` followed by more dotted segments."""
    return candidate_id.startswith(parent_id + ".")


def _flatten(
    node: Dict[str, Any],
    positions: List[Position],
    depths: List[int],
    parent_path: Optional[str],
    depth: int,
) -> None:
    try:
        position_id = node["id"]
        position_type = PositionType(node["type"])
    except (KeyError, TypeError, ValueError) as e:
        raise TreeError(f"Invalid position node: {node!r}") from e

    path = node.get("path") or parent_path
    if path is None:
        path = position_id if position_type == PositionType.FILE else ""

    depths.append(depth)
    positions.append(
        Position(
            id=position_id,
            type=position_type,
            path=path,
            name=node.get("name"),
        )
    )
    for child in node.get("children") or []:
        _flatten(child, positions, depths, parent_path=path, depth=depth + 1)
