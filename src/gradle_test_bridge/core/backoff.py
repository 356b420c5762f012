"""Bounded, increasing poll delays."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class Backoff:
    """Multiplicative backoff capped at ``max_delay`` seconds.

    The default (100ms growing by 1.5x up to 500ms) is the polling rhythm used
    for both debug port probes and report directory checks.
    """

    initial: float = 0.1
    factor: float = 1.5
    max_delay: float = 0.5

    def delays(self) -> Iterator[float]:
        delay = self.initial
        while True:
            yield delay
            delay = min(delay * self.factor, self.max_delay)
