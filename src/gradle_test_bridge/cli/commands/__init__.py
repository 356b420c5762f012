"""CLI command implementations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from argparse import Namespace


class Command(ABC):
    """Base class for CLI subcommands."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Command identifier."""

    @abstractmethod
    def execute(self, args: Namespace) -> int:
        """Execute the command.

        Args:
            args: Parsed command-line arguments.

        Returns:
            Exit code.
        """
