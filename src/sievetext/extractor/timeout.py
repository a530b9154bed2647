"""
Runs one document's extraction under an optional wall-clock bound.

With a timeout, the extraction runs in its own daemon thread and the caller
waits at most ``timeout`` seconds. On expiry the thread's cancel token is set
and the caller moves on without joining it. An extraction stuck inside a
collaborator that never returns to a cancellation point keeps running until
it finishes on its own or the process exits; such threads are abandoned, not
killed, and are counted by the ``sievetext_abandoned_extractions`` gauge.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, List, Optional

import structlog

from sievetext.exceptions import DecodeError, ExtractionCancelled, ExtractionError
from sievetext.observability import gauge_dec, gauge_inc, histogram
from sievetext.protocols import ExtractionOutcome, FailureKind

from .policy import CancelToken

logger = structlog.get_logger(__name__)

ExtractFn = Callable[[CancelToken], List[str]]


def _outcome_of(fn: ExtractFn, token: CancelToken) -> ExtractionOutcome:
    try:
        return ExtractionOutcome.success(fn(token))
    except ExtractionCancelled:
        return ExtractionOutcome.failed(FailureKind.TIMEOUT, "cancelled")
    except (DecodeError, ExtractionError) as e:
        return ExtractionOutcome.failed(e.kind, str(e))
    except Exception as e:
        logger.exception("Unexpected extraction failure")
        return ExtractionOutcome.failed(FailureKind.EXTRACT_ERROR, f"{type(e).__name__}: {e}")


class _ExtractionThread(threading.Thread):
    def __init__(self, fn: ExtractFn, token: CancelToken, name: str) -> None:
        super().__init__(name=name, daemon=True)
        self.fn = fn
        self.token = token
        self.outcome: Optional[ExtractionOutcome] = None
        self.abandoned = False
        self._state_lock = threading.Lock()

    def run(self) -> None:
        outcome = _outcome_of(self.fn, self.token)
        with self._state_lock:
            self.outcome = outcome
            if self.abandoned:
                gauge_dec("abandoned_extractions")
                logger.info("Abandoned extraction finished", thread=self.name)

    def abandon(self) -> bool:
        """Mark as abandoned; False if the outcome arrived in the meantime."""
        with self._state_lock:
            if self.outcome is not None:
                return False
            self.abandoned = True
            gauge_inc("abandoned_extractions")
            return True


class TimeoutExecutor:
    """Executes extraction callables and classifies their outcome."""

    _counter = 0
    _counter_lock = threading.Lock()

    def __init__(self, timeout: Optional[float] = None) -> None:
        if timeout is not None and timeout <= 0:
            raise ValueError(f"Non-positive timeout: {timeout}")
        self.timeout = timeout

    @classmethod
    def _thread_name(cls) -> str:
        with cls._counter_lock:
            cls._counter += 1
            return f"sievetext-extract-{cls._counter}"

    def run(self, fn: ExtractFn, timeout: Optional[float] = None) -> ExtractionOutcome:
        """
        Run ``fn`` and return its outcome.

        Args:
            fn: Extraction callable receiving the cancel token
            timeout: Overrides the executor's timeout for this call

        Returns:
            The sentences, or a TIMEOUT, DECODE_ERROR or EXTRACT_ERROR failure.
        """
        timeout = self.timeout if timeout is None else timeout
        start = time.perf_counter()
        try:
            if timeout is None:
                return _outcome_of(fn, CancelToken())
            return self._run_bounded(fn, timeout)
        finally:
            histogram("extraction_duration_seconds", time.perf_counter() - start)

    def _run_bounded(self, fn: ExtractFn, timeout: float) -> ExtractionOutcome:
        token = CancelToken()
        thread = _ExtractionThread(fn, token, self._thread_name())
        thread.start()
        thread.join(timeout)

        if thread.outcome is not None:
            return thread.outcome

        token.cancel()
        if not thread.abandon():
            # Finished between the join deadline and the cancel.
            assert thread.outcome is not None
            return thread.outcome
        logger.warning("Extraction timed out, abandoning worker thread", timeout=timeout, thread=thread.name)
        return ExtractionOutcome.failed(FailureKind.TIMEOUT, f"Extraction exceeded {timeout}s")
