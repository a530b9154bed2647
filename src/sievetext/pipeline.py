"""
Concurrent batch driver.

An asyncio orchestrator feeds input files into one shared queue drained by
``worker_count`` worker tasks. Each worker owns one output shard and runs its
documents one at a time in a dedicated thread of a thread pool, so document
work never blocks the event loop and never overlaps within a worker.
"""

from __future__ import annotations

import asyncio
import signal
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TextIO

import structlog

from sievetext.config.config import Config
from sievetext.exceptions import DecodeError, OutputShardError
from sievetext.extractor.policy import SentenceExtractor
from sievetext.extractor.timeout import TimeoutExecutor
from sievetext.observability import gauge_dec, gauge_inc, increment
from sievetext.protocols import ExtractionOutcome, FailureKind, SourceDocument
from sievetext.sources import iter_documents

logger = structlog.get_logger(__name__)


@dataclass
class BatchCounters:
    """Per-kind document counts of one batch."""

    valid_documents: int = 0
    zero_sentence_documents: int = 0
    decode_errors: int = 0
    extract_errors: int = 0
    timeouts: int = 0
    output_sentences: int = 0

    def failures(self, kind: FailureKind) -> int:
        return {
            FailureKind.DECODE_ERROR: self.decode_errors,
            FailureKind.EXTRACT_ERROR: self.extract_errors,
            FailureKind.TIMEOUT: self.timeouts,
        }[kind]

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class BatchReport:
    """Outcome of one batch run."""

    counters: BatchCounters
    inputs: int
    shards: List[Path] = field(default_factory=list)
    aborted_workers: List[int] = field(default_factory=list)
    duration: float = 0.0
    interrupted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "counters": self.counters.to_dict(),
            "inputs": self.inputs,
            "shards": [str(path) for path in self.shards],
            "aborted_workers": list(self.aborted_workers),
            "duration": self.duration,
            "interrupted": self.interrupted,
        }


class _Tally:
    """Lock-guarded counters mirrored into Prometheus."""

    def __init__(self) -> None:
        self.counters = BatchCounters()
        self._lock = threading.Lock()

    def success(self, sentence_count: int) -> None:
        with self._lock:
            self.counters.valid_documents += 1
            if sentence_count:
                self.counters.output_sentences += sentence_count
            else:
                self.counters.zero_sentence_documents += 1
        increment("documents_valid_total")
        if sentence_count:
            increment("output_sentences_total", sentence_count)
        else:
            increment("documents_zero_sentence_total")

    def failure(self, kind: FailureKind) -> None:
        with self._lock:
            if kind is FailureKind.DECODE_ERROR:
                self.counters.decode_errors += 1
            elif kind is FailureKind.EXTRACT_ERROR:
                self.counters.extract_errors += 1
            else:
                self.counters.timeouts += 1
        increment("extraction_errors_total", labels={"kind": kind.value})
        if kind is FailureKind.TIMEOUT:
            increment("extraction_timeouts_total")

    def snapshot(self) -> BatchCounters:
        with self._lock:
            return BatchCounters(**asdict(self.counters))


class _ShardAborted(Exception):
    """The worker's shard can no longer be written."""


class BatchDriver:
    """
    Runs the decode-and-extract pipeline over many input files.

    Args:
        config: Application configuration
        extractor: Sentence extraction policy, built from ``config`` if omitted
        executor: Timeout executor, built from ``config`` if omitted
        install_signal_handlers: Stop gracefully on SIGINT/SIGTERM
    """

    def __init__(
        self,
        config: Config,
        extractor: Optional[SentenceExtractor] = None,
        executor: Optional[TimeoutExecutor] = None,
        install_signal_handlers: bool = True,
    ) -> None:
        self.config = config
        self.extractor = extractor or SentenceExtractor(config.extraction)
        self.executor = executor or TimeoutExecutor(config.extraction.timeout_seconds)
        self.worker_count = config.extraction.worker_count
        self.install_signal_handlers = install_signal_handlers
        self.logger = logger.bind(component="BatchDriver")

        self._queue: Optional[asyncio.Queue[Optional[Path]]] = None
        self._tally = _Tally()
        self._shutdown_requested = False
        self._aborted: List[int] = []
        self._shards: List[Path] = []
        self._original_handlers: Dict[int, Any] = {}

    # --- Public API ---

    def shard_path(self, worker_index: int) -> Path:
        output = self.config.output
        return output.output_dir / f"{output.shard_prefix}{worker_index:05d}"

    def request_shutdown(self) -> None:
        """Let in-flight inputs finish and stop taking new ones."""
        if not self._shutdown_requested:
            self.logger.info("Shutdown requested, workers stop after their current input")
        self._shutdown_requested = True

    async def run(self, inputs: Sequence[Path]) -> BatchReport:
        """
        Process every input and return once all workers are done.

        Raises:
            OutputShardError: If no worker could open its output shard.
        """
        start = time.perf_counter()
        self._tally = _Tally()
        self._aborted = []
        self._shards = []
        self._shutdown_requested = False

        self._queue = asyncio.Queue()
        for path in inputs:
            self._queue.put_nowait(Path(path))
        for _ in range(self.worker_count):
            self._queue.put_nowait(None)

        self.logger.info("Starting batch", inputs=len(inputs), workers=self.worker_count)
        if self.install_signal_handlers:
            self._setup_signal_handlers()
        pool = ThreadPoolExecutor(max_workers=self.worker_count, thread_name_prefix="sievetext-worker")
        try:
            async with asyncio.TaskGroup() as tg:
                for index in range(self.worker_count):
                    tg.create_task(self._worker(index, pool))
        finally:
            # Abandoned extraction threads are daemons outside this pool.
            pool.shutdown(wait=True)
            if self.install_signal_handlers:
                self._cleanup_signal_handlers()

        if len(self._aborted) == self.worker_count:
            raise OutputShardError(f"No worker could open its output shard in {self.config.output.output_dir}")

        report = BatchReport(
            counters=self._tally.snapshot(),
            inputs=len(inputs),
            shards=sorted(self._shards),
            aborted_workers=sorted(self._aborted),
            duration=time.perf_counter() - start,
            interrupted=self._shutdown_requested,
        )
        self.logger.info("Batch finished", duration=round(report.duration, 3), **report.counters.to_dict())
        return report

    def run_sync(self, inputs: Sequence[Path]) -> BatchReport:
        return asyncio.run(self.run(inputs))

    # --- Workers ---

    async def _worker(self, index: int, pool: ThreadPoolExecutor) -> None:
        assert self._queue is not None
        loop = asyncio.get_running_loop()
        log = self.logger.bind(worker_id=index)

        try:
            shard = await loop.run_in_executor(pool, self._open_shard, index)
        except OSError as e:
            log.error("Cannot open output shard, worker aborted", path=str(self.shard_path(index)), error=str(e))
            self._aborted.append(index)
            return

        gauge_inc("workers_active")
        try:
            while True:
                if self._shutdown_requested:
                    log.info("Worker stopping on shutdown request")
                    break
                path = await self._queue.get()
                try:
                    if path is None:
                        break
                    await loop.run_in_executor(pool, self._process_input, path, shard, index)
                except _ShardAborted as e:
                    log.error("Output shard write failed, worker aborted", error=str(e))
                    self._aborted.append(index)
                    break
                finally:
                    self._queue.task_done()
        finally:
            gauge_dec("workers_active")
            await loop.run_in_executor(pool, shard.close)

    def _open_shard(self, index: int) -> TextIO:
        path = self.shard_path(index)
        path.parent.mkdir(parents=True, exist_ok=True)
        shard = open(path, "w", encoding="utf-8")
        self._shards.append(path)
        return shard

    def _process_input(self, path: Path, shard: TextIO, worker_id: int) -> None:
        """Extract every document of one input file. Runs in a pool thread."""
        with structlog.contextvars.bound_contextvars(worker_id=worker_id, file_name=str(path)):
            try:
                for document in iter_documents(path, self.config.decoding, on_error=self._on_decode_error):
                    self._process_document(document, shard)
            except _ShardAborted:
                raise
            except OSError as e:
                logger.warning("Cannot read input", error=str(e))
                self._tally.failure(FailureKind.DECODE_ERROR)
            except Exception as e:
                logger.exception("Unexpected error reading input", error=str(e))
                self._tally.failure(FailureKind.DECODE_ERROR)

    def _on_decode_error(self, error: DecodeError) -> None:
        self._tally.failure(FailureKind.DECODE_ERROR)

    def _process_document(self, document: SourceDocument, shard: TextIO) -> None:
        outcome: ExtractionOutcome = self.executor.run(
            lambda token: self.extractor.extract(document.html, token),
        )
        if not outcome.ok:
            assert outcome.failure is not None
            logger.warning(
                "Document failed",
                target_uri=document.target_uri,
                kind=outcome.failure.value,
                error=outcome.message,
            )
            self._tally.failure(outcome.failure)
            return

        sentences = outcome.sentences or []
        if sentences:
            self._write(shard, document, sentences)
        self._tally.success(len(sentences))
        logger.debug("Document extracted", target_uri=document.target_uri, sentences=len(sentences))

    def _write(self, shard: TextIO, document: SourceDocument, sentences: List[str]) -> None:
        parts = []
        if self.config.output.write_names:
            parts.append(f"\n\n{document.annotation()}\n")
        parts.extend(f"{sentence}\n" for sentence in sentences)
        try:
            shard.write("".join(parts))
            shard.flush()
        except OSError as e:
            logger.error("Shard write failed", target_uri=document.target_uri, error=str(e))
            self._tally.failure(FailureKind.EXTRACT_ERROR)
            raise _ShardAborted(str(e)) from e

    # --- Signals ---

    def _setup_signal_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return

        def signal_handler(signum: int, frame: Any) -> None:
            self.logger.info(f"Received signal {signum}, initiating shutdown")
            self.request_shutdown()

        for signum in (signal.SIGINT, signal.SIGTERM):
            self._original_handlers[signum] = signal.signal(signum, signal_handler)

    def _cleanup_signal_handlers(self) -> None:
        for signum, handler in self._original_handlers.items():
            signal.signal(signum, handler)
        self._original_handlers.clear()
