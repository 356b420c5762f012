"""Results command implementation."""

from __future__ import annotations

from argparse import Namespace

from gradle_test_bridge.cli.commands import Command
from gradle_test_bridge.cli.commands._common import load_tree
from gradle_test_bridge.cli.exit_codes import EXIT_SUCCESS, EXIT_TESTS_FAILED
from gradle_test_bridge.cli.output import results_to_dict, write_json
from gradle_test_bridge.coordinator import results_from_reports
from gradle_test_bridge.results.report_parser import ReportParser


class ResultsCommand(Command):
    """Map existing JUnit XML reports onto a position tree."""

    @property
    def name(self) -> str:
        """Command identifier."""
        return "results"

    def execute(self, args: Namespace) -> int:
        tree, _ = load_tree(args)
        reports = ReportParser().parse(args.results_dir)
        results = results_from_reports(tree, reports)

        write_json({"results": results_to_dict(results)}, args.output)

        if any(result.failed for result in results.values()):
            return EXIT_TESTS_FAILED
        return EXIT_SUCCESS
