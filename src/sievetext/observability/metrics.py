"""
Defines and manages Prometheus metrics for the application.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Gauge as _OrigGauge
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import start_http_server

if TYPE_CHECKING:
    from sievetext.config.config import MonitoringConfig

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Importing this module more than once (test collection, reloads) must not
# register the same collector twice in the global registry.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race, fall back to the now-existing collector.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Gauge = _duplicate_safe_factory(_OrigGauge)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "documents_valid_total": Counter(
            "sievetext_documents_valid_total",
            "Documents whose extraction completed, with or without sentences",
        ),
        "documents_zero_sentence_total": Counter(
            "sievetext_documents_zero_sentence_total",
            "Documents whose extraction completed without any sentence",
        ),
        "extraction_errors_total": Counter(
            "sievetext_extraction_errors_total",
            "Documents that failed, by failure kind",
            ["kind"],
        ),
        "extraction_timeouts_total": Counter(
            "sievetext_extraction_timeouts_total",
            "Documents whose extraction exceeded the configured timeout",
        ),
        "output_sentences_total": Counter(
            "sievetext_output_sentences_total",
            "Sentences written to output shards",
        ),
        "abandoned_extractions": Gauge(
            "sievetext_abandoned_extractions",
            "Timed-out extraction threads that are still running",
        ),
        "extraction_duration_seconds": Histogram(
            "sievetext_extraction_duration_seconds",
            "Wall-clock time spent extracting one document",
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
        ),
        "workers_active": Gauge(
            "sievetext_workers_active",
            "Batch workers currently draining the input queue",
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


class MetricsManager:
    """Starts the Prometheus exporter once per process."""

    _lock = threading.Lock()
    _started_port: Optional[int] = None

    def __init__(self, config: MonitoringConfig) -> None:
        self.config = config

    def start(self) -> None:
        port = self.config.prometheus_port
        if port is None:
            return
        with self._lock:
            if MetricsManager._started_port is not None:
                return
            start_http_server(port)
            MetricsManager._started_port = port
        logger.info("Prometheus exporter started", port=port)
