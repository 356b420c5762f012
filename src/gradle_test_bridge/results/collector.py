"""Waiting for Gradle to write its XML reports."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Optional, Union

from gradle_test_bridge.core.backoff import Backoff
from gradle_test_bridge.core.cancellation import CancellationToken, cancellable_sleep
from gradle_test_bridge.core.logging import get_logger
from gradle_test_bridge.results.report_parser import XML_FILE_SUFFIX, list_report_files

LOGGER = get_logger(__name__)


async def wait_for_test_results(
    directory: Union[str, Path, None],
    timeout: float = 30.0,
    settle: float = 0.5,
    backoff: Optional[Backoff] = None,
    cancel_token: Optional[CancellationToken] = None,
    modified_after: Optional[float] = None,
) -> bool:
    """Poll ``directory`` until at least one report file exists.

    Once a report appears, waits ``settle`` seconds so Gradle can finish
    writing the rest before they are parsed.

    Args:
        directory: Test results directory. Empty means nothing to wait for.
        timeout: Maximum time to wait in seconds.
        settle: Grace period after the first report appears.
        backoff: Poll delays (default 100ms growing to 500ms).
        cancel_token: Stops waiting early when cancelled.
        modified_after: Ignore reports older than this timestamp.

    Returns:
        True if reports were found (or no directory was given), False on
        timeout or cancellation.
    """
    if not directory:
        return True

    delays = (backoff or Backoff()).delays()
    deadline = time.monotonic() + timeout

    while True:
        if list_report_files(directory, XML_FILE_SUFFIX, modified_after):
            if settle > 0:
                await asyncio.sleep(settle)
            return True

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break

        if await cancellable_sleep(min(next(delays), remaining), cancel_token):
            LOGGER.debug("Stopped waiting for test results: run cancelled")
            return False

    LOGGER.warning(f"Timed out after {timeout:g}s waiting for XML test results in {directory}")
    return False
