"""Configuration loading and models."""

from gradle_test_bridge.config.loader import load_config
from gradle_test_bridge.config.models import (
    BridgeConfig,
    OutputConfig,
    ReadinessConfig,
)

__all__ = [
    "BridgeConfig",
    "OutputConfig",
    "ReadinessConfig",
    "load_config",
]
