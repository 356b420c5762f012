"""JSON rendering of run results."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from gradle_test_bridge.coordinator import RunOutcome
from gradle_test_bridge.core.models import Result


def results_to_dict(results: Dict[str, Result]) -> Dict[str, Any]:
    return {position_id: result.to_dict() for position_id, result in results.items()}


def outcome_to_dict(outcome: RunOutcome) -> Dict[str, Any]:
    """Serialize a run outcome for editors and scripts."""
    data: Dict[str, Any] = {
        "results": results_to_dict(outcome.results),
        "passed": outcome.passed,
        "exit_code": outcome.exit_code,
        "termination_reason": (
            outcome.termination_reason.value if outcome.termination_reason else None
        ),
    }
    if outcome.connection is not None:
        data["connection"] = outcome.connection.to_dict()
    if outcome.log_path is not None:
        data["log_path"] = str(outcome.log_path)
    return data


def write_json(data: Dict[str, Any], output: Optional[Path] = None) -> None:
    """Write ``data`` as JSON to ``output``, or stdout when not given."""
    text = json.dumps(data, indent=2)
    if output is None:
        sys.stdout.write(text + "\n")
        sys.stdout.flush()
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
