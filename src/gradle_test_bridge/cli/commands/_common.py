"""Helpers shared by the tree-based commands."""

from __future__ import annotations

from argparse import Namespace
from typing import Tuple

from gradle_test_bridge.cli.config_bridge import ConfigBridge
from gradle_test_bridge.config import BridgeConfig, load_config
from gradle_test_bridge.core.errors import TreeError
from gradle_test_bridge.core.models import Position
from gradle_test_bridge.core.tree import PositionTree
from gradle_test_bridge.gradle.project import find_project_directory


def load_tree(args: Namespace) -> Tuple[PositionTree, Position]:
    """Load the tree from ``--tree`` and resolve ``--position``.

    Returns:
        The tree restricted to the selected position, and that position.
    """
    tree = PositionTree.from_json(args.tree)
    position_id = getattr(args, "position", None)
    if position_id:
        if tree.get(position_id) is None:
            raise TreeError(f"Position '{position_id}' is not in {args.tree}")
        tree = tree.subtree(position_id)
    return tree, tree.data()


def load_command_config(args: Namespace, position: Position) -> BridgeConfig:
    """Load the config of the project containing ``position``."""
    project_root = find_project_directory(position.path or ".")
    return load_config(
        project_root=project_root,
        config_path=getattr(args, "config", None),
        overrides=ConfigBridge.args_to_overrides(args),
    )
