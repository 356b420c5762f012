"""Bridge between CLI arguments and configuration models."""

from __future__ import annotations

import argparse
from typing import Any, Dict


class ConfigBridge:
    """Translates CLI arguments to configuration overrides."""

    @staticmethod
    def args_to_overrides(args: argparse.Namespace) -> Dict[str, Any]:
        """Convert CLI arguments to config override dict.

        CLI arguments take precedence over config file values. Only options
        given explicitly produce overrides.

        Args:
            args: Parsed CLI arguments.

        Returns:
            Dictionary of config overrides.
        """
        overrides: Dict[str, Any] = {}

        readiness: Dict[str, Any] = {}
        if getattr(args, "readiness", None):
            readiness["strategy"] = args.readiness
        if getattr(args, "readiness_timeout", None) is not None:
            readiness["timeout"] = args.readiness_timeout
        if getattr(args, "fast", False):
            readiness["fast"] = True
        if readiness:
            overrides["readiness"] = readiness

        if getattr(args, "gradle", None):
            overrides["gradle_executable"] = args.gradle
        if getattr(args, "port", None) is not None:
            overrides["dap_port"] = args.port

        return overrides
