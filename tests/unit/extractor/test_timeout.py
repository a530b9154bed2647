"""
Unit tests for the timeout-bounded executor.
"""

import threading
import time

import pytest
from sievetext.exceptions import ArchiveFormatError, ExtractionError
from sievetext.extractor.timeout import TimeoutExecutor
from sievetext.observability import METRICS
from sievetext.protocols import FailureKind

from tests.helpers import histogram_observes, metric_value


@pytest.fixture(autouse=True)
def join_extraction_threads():
    yield
    for thread in threading.enumerate():
        if thread.name.startswith("sievetext-extract-"):
            thread.join(timeout=5)


class TestUnbounded:
    """Test cases for extraction without a timeout."""

    def test_success(self):
        outcome = TimeoutExecutor().run(lambda token: ["a", "b"])

        assert outcome.ok
        assert outcome.sentences == ["a", "b"]

    def test_runs_in_caller_thread(self):
        threads = []

        TimeoutExecutor().run(lambda token: threads.append(threading.current_thread()) or [])

        assert threads == [threading.current_thread()]

    def test_empty_result_is_success(self):
        outcome = TimeoutExecutor().run(lambda token: [])

        assert outcome.ok
        assert outcome.sentences == []

    def test_extraction_error(self):
        def fail(token):
            raise ExtractionError("renderer failed")

        outcome = TimeoutExecutor().run(fail)

        assert outcome.failure is FailureKind.EXTRACT_ERROR
        assert "renderer failed" in outcome.message

    def test_unexpected_exception_is_extract_error(self):
        def fail(token):
            raise KeyError("boom")

        assert TimeoutExecutor().run(fail).failure is FailureKind.EXTRACT_ERROR

    def test_decode_error(self):
        def fail(token):
            raise ArchiveFormatError("truncated")

        assert TimeoutExecutor().run(fail).failure is FailureKind.DECODE_ERROR

    def test_records_duration(self):
        with histogram_observes(METRICS["extraction_duration_seconds"]):
            TimeoutExecutor().run(lambda token: [])


class TestBounded:
    """Test cases for extraction under a timeout."""

    def test_fast_extraction_succeeds(self):
        outcome = TimeoutExecutor(timeout=2.0).run(lambda token: ["done"])

        assert outcome.sentences == ["done"]

    def test_runs_in_separate_thread(self):
        threads = []

        TimeoutExecutor(timeout=2.0).run(lambda token: threads.append(threading.current_thread()) or [])

        assert threads[0] is not threading.current_thread()
        assert threads[0].daemon

    def test_failure_kinds_preserved(self):
        def fail(token):
            raise ExtractionError("bad")

        assert TimeoutExecutor(timeout=2.0).run(fail).failure is FailureKind.EXTRACT_ERROR

    def test_timeout_returns_within_bound(self):
        release = threading.Event()

        def stuck(token):
            release.wait(timeout=5)
            return ["late"]

        start = time.monotonic()
        outcome = TimeoutExecutor(timeout=0.2).run(stuck)
        elapsed = time.monotonic() - start
        release.set()

        assert outcome.failure is FailureKind.TIMEOUT
        assert outcome.is_timeout
        assert elapsed < 1.0

    def test_timeout_signals_cancellation(self):
        seen_cancel = threading.Event()

        def cooperative(token):
            while not token.cancelled:
                time.sleep(0.01)
            seen_cancel.set()
            token.raise_if_cancelled()
            return []

        outcome = TimeoutExecutor(timeout=0.1).run(cooperative)

        assert outcome.is_timeout
        assert seen_cancel.wait(timeout=2)

    def test_abandoned_gauge_tracks_stuck_threads(self):
        gauge = METRICS["abandoned_extractions"]
        release = threading.Event()
        finished = threading.Event()

        def stuck(token):
            release.wait(timeout=5)
            finished.set()
            return []

        before = metric_value(gauge)
        TimeoutExecutor(timeout=0.1).run(stuck)

        assert metric_value(gauge) == before + 1

        release.set()
        assert finished.wait(timeout=2)
        deadline = time.monotonic() + 2
        while metric_value(gauge) != before and time.monotonic() < deadline:
            time.sleep(0.01)
        assert metric_value(gauge) == before

    def test_per_call_timeout_override(self):
        release = threading.Event()

        def stuck(token):
            release.wait(timeout=5)
            return []

        outcome = TimeoutExecutor().run(stuck, timeout=0.1)
        release.set()

        assert outcome.is_timeout


@pytest.mark.parametrize("timeout", [0, -1])
def test_non_positive_timeout_rejected(timeout):
    with pytest.raises(ValueError):
        TimeoutExecutor(timeout=timeout)
