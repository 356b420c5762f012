"""Unit tests for core data models."""

from __future__ import annotations

import pytest

from gradle_test_bridge.core.models import (
    ConnectionDescriptor,
    ReportEntry,
    Result,
    ResultStatus,
    RunStrategy,
    TestError,
    build_candidate_ids,
    strip_parameters,
)


class TestStripParameters:
    """Tests for strip_parameters."""

    def test_strips_trailing_parameter_list(self) -> None:
        """Test parameterized suffix is removed."""
        assert strip_parameters("add(int, int)") == "add"

    def test_only_trailing_parenthesis_is_stripped(self) -> None:
        """Test a suffix is only removed when it ends the name."""
        assert strip_parameters("add(1, 2)[3]") == "add(1, 2)[3]"
        assert strip_parameters("add(1, 2)") == "add"

    def test_plain_name_unchanged(self) -> None:
        """Test names without parameters are returned as-is."""
        assert strip_parameters("testSomething") == "testSomething"


class TestBuildCandidateIds:
    """Tests for build_candidate_ids."""

    def test_raw_id_only_without_nested_class(self) -> None:
        """Test a top-level class produces a single candidate."""
        assert build_candidate_ids("com.example.FooTest", "bar") == [
            "com.example.FooTest.bar"
        ]

    def test_nested_class_adds_dotted_form(self) -> None:
        """Test nested classes produce the raw and dotted forms in order."""
        assert build_candidate_ids("com.example.FooTest$Inner", "bar") == [
            "com.example.FooTest$Inner.bar",
            "com.example.FooTest.Inner.bar",
        ]

    def test_parameters_stripped_in_every_candidate(self) -> None:
        """Test parameter suffix is stripped before building ids."""
        candidates = build_candidate_ids("a.B$C", "test(String)")
        assert candidates == ["a.B$C.test", "a.B.C.test"]

    def test_entry_candidates(self) -> None:
        """Test ReportEntry delegates to build_candidate_ids."""
        entry = ReportEntry(class_name="a.B", test_name="t()")
        assert entry.candidate_ids() == ["a.B.t"]
        assert entry.failed is False


class TestResult:
    """Tests for Result serialization."""

    def test_passed_result_to_dict(self) -> None:
        """Test passed result only carries the status."""
        assert Result(status=ResultStatus.PASSED).to_dict() == {"status": "passed"}

    def test_failed_result_to_dict(self) -> None:
        """Test failed result includes short message and errors."""
        result = Result(
            status=ResultStatus.FAILED,
            short="boom",
            errors=[TestError(message="boom", line=9), TestError(message="no line")],
        )
        assert result.failed
        assert result.to_dict() == {
            "status": "failed",
            "short": "boom",
            "errors": [{"message": "boom", "line": 9}, {"message": "no line"}],
        }


class TestRunStrategy:
    """Tests for RunStrategy parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("integrated", RunStrategy.INTEGRATED),
            ("debug-attach", RunStrategy.DEBUG_ATTACH),
            ("debug_attach", RunStrategy.DEBUG_ATTACH),
            ("dap", RunStrategy.DEBUG_ATTACH),
            ("DAP", RunStrategy.DEBUG_ATTACH),
        ],
    )
    def test_parse(self, value: str, expected: RunStrategy) -> None:
        """Test CLI and editor spellings are accepted."""
        assert RunStrategy.parse(value) == expected

    def test_parse_unknown(self) -> None:
        """Test unknown strategy raises ValueError."""
        with pytest.raises(ValueError):
            RunStrategy.parse("remote")


class TestConnectionDescriptor:
    """Tests for ConnectionDescriptor."""

    def test_to_dict_uses_attach_configuration_keys(self) -> None:
        """Test descriptor serializes in debug adapter spelling."""
        descriptor = ConnectionDescriptor(
            adapter_type="kotlin",
            host="localhost",
            port=5005,
            project_root="/work/project",
        )
        assert descriptor.to_dict() == {
            "type": "kotlin",
            "request": "attach",
            "name": "Attach to Gradle Test",
            "projectRoot": "/work/project",
            "hostName": "localhost",
            "port": 5005,
            "timeout": 30000,
        }
