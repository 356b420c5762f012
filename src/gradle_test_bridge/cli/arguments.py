"""Argument parser construction for the gradle-test-bridge CLI."""

from __future__ import annotations

import argparse
from pathlib import Path


def _add_global_options(parser: argparse.ArgumentParser) -> None:
    """Add global options: version, debug, verbose, quiet, config."""
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show gradle-test-bridge version and exit.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (info-level) logging.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce logging output to errors only.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        type=Path,
        help="Path to config file (default: .gradle-test-bridge.yml in project root).",
    )


def _add_tree_options(parser: argparse.ArgumentParser) -> None:
    """Add tree options: tree, position."""
    parser.add_argument(
        "--tree",
        metavar="PATH",
        type=Path,
        required=True,
        help="JSON file with the position tree produced by test discovery.",
    )
    parser.add_argument(
        "--position",
        metavar="ID",
        default=None,
        help="Position id to run (default: the tree root).",
    )


def _add_output_options(parser: argparse.ArgumentParser) -> None:
    """Add output options: output."""
    parser.add_argument(
        "--output",
        metavar="PATH",
        type=Path,
        default=None,
        help="Write the JSON results to this file instead of stdout.",
    )


def _add_run_options(parser: argparse.ArgumentParser) -> None:
    """Add run options: strategy, readiness, fast, gradle, log-file, no-stream."""
    parser.add_argument(
        "--strategy",
        choices=["integrated", "debug-attach"],
        default="integrated",
        help="Run normally or suspend the test JVM until a debugger attaches.",
    )
    parser.add_argument(
        "--readiness",
        choices=["port", "log"],
        default=None,
        help="How to detect that the debug port is open (default: port).",
    )
    parser.add_argument(
        "--readiness-timeout",
        metavar="SECONDS",
        type=float,
        default=None,
        help="Seconds to wait for the debug port (default: 30).",
    )
    parser.add_argument(
        "--fast",
        action="store_true",
        help="Shorten the default readiness timeout to 10 seconds.",
    )
    parser.add_argument(
        "--gradle",
        metavar="EXECUTABLE",
        default=None,
        help="Gradle executable (default: nearest gradlew, then gradle in PATH).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Debug port the test JVM listens on (default: 5005).",
    )
    parser.add_argument(
        "--log-file",
        metavar="PATH",
        type=Path,
        default=None,
        help="Keep the combined Gradle output in this file.",
    )
    parser.add_argument(
        "--no-stream",
        action="store_true",
        help="Do not echo Gradle output to stderr while the tests run.",
    )


def _add_results_options(parser: argparse.ArgumentParser) -> None:
    """Add results options: results-dir."""
    parser.add_argument(
        "--results-dir",
        metavar="PATH",
        type=Path,
        required=True,
        help="Directory holding the JUnit XML reports.",
    )


def _add_serve_options(parser: argparse.ArgumentParser) -> None:
    """Add serve options: mcp, project-root."""
    parser.add_argument(
        "--mcp",
        action="store_true",
        help="Serve the MCP protocol over stdio.",
    )
    parser.add_argument(
        "project_root",
        nargs="?",
        default=".",
        type=Path,
        help="Gradle project to serve (default: current directory).",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser for the gradle-test-bridge CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="gradle-test-bridge",
        description="gradle-test-bridge - run Gradle tests for an editor test tree.",
    )
    _add_global_options(parser)

    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser(
        "run",
        help="Run the tests of a position and print per-position results.",
    )
    _add_tree_options(run_parser)
    _add_run_options(run_parser)
    _add_output_options(run_parser)

    results_parser = subparsers.add_parser(
        "results",
        help="Map existing JUnit XML reports onto a position tree.",
    )
    _add_tree_options(results_parser)
    _add_results_options(results_parser)
    _add_output_options(results_parser)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run as a server for editor or AI tool integration.",
    )
    _add_serve_options(serve_parser)

    return parser
