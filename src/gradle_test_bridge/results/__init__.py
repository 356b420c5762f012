"""Parsing JUnit reports and mapping them onto the position tree."""

from gradle_test_bridge.results.aggregator import ResultAggregator
from gradle_test_bridge.results.collector import wait_for_test_results
from gradle_test_bridge.results.matcher import PositionMatcher
from gradle_test_bridge.results.report_parser import ReportParser

__all__ = [
    "PositionMatcher",
    "ReportParser",
    "ResultAggregator",
    "wait_for_test_results",
]
