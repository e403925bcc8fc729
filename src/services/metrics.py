"""CloudWatch custom metrics for model round-trips and tool invocations.

Design
------
* Data points are collected in a thread-safe in-memory buffer.
* A daemon thread flushes the buffer to CloudWatch every
  ``FLUSH_INTERVAL_SECONDS`` when ``METRICS_ENABLED=true``.  Otherwise the
  points are only logged at DEBUG and dropped on flush.
* Each ``put_metric_data`` call carries at most ``MAX_BATCH_SIZE`` points.

Usage
-----
>>> from src.services.metrics import metrics
>>> metrics.record_model_call("advance", latency_ms=412.0)
>>> metrics.record_model_failure("advance", error_type="APIConnectionError")
>>> metrics.record_tool_call("cancel_appointment", success=True, latency_ms=0.3)
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "GrandeurSalon"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # CloudWatch API limit per PutMetricData call


def _dims(**pairs: str) -> list[dict[str, str]]:
    return [{"Name": name, "Value": value} for name, value in pairs.items()]


class MetricsClient:
    """Batched CloudWatch metrics publisher."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None  # lazy-init

        if self._enabled:
            self._start_flush_thread()

    def _get_cw_client(self):
        """Create the boto3 CloudWatch client on first use."""
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Model service ────────────────────────────────────────────────

    def record_model_call(self, operation: str, latency_ms: float) -> None:
        """Record a successful round-trip to the language model."""
        now = datetime.now(UTC)
        self._append("ModelService/RequestCount", _dims(Operation=operation, Status="success"), 1, "Count", now)
        self._append("ModelService/Latency", _dims(Operation=operation), latency_ms, "Milliseconds", now)
        logger.debug("Metric: model %s success latency=%.1fms", operation, latency_ms)

    def record_model_failure(
        self,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        """Record a failed round-trip to the language model."""
        now = datetime.now(UTC)
        self._append("ModelService/RequestCount", _dims(Operation=operation, Status="failure"), 1, "Count", now)
        self._append("ModelService/ErrorCount", _dims(Operation=operation, ErrorType=error_type), 1, "Count", now)
        if latency_ms > 0:
            self._append("ModelService/Latency", _dims(Operation=operation), latency_ms, "Milliseconds", now)
        logger.debug(
            "Metric: model %s failure error=%s latency=%.1fms",
            operation, error_type, latency_ms,
        )

    # ── Tools ────────────────────────────────────────────────────────

    def record_tool_call(self, tool_name: str, success: bool, latency_ms: float) -> None:
        """Record one tool dispatch and whether the tool reported success."""
        now = datetime.now(UTC)
        status = "success" if success else "failure"
        self._append("Tools/InvocationCount", _dims(Tool=tool_name, Status=status), 1, "Count", now)
        self._append("Tools/Latency", _dims(Tool=tool_name), latency_ms, "Milliseconds", now)
        logger.debug("Metric: tool %s %s latency=%.2fms", tool_name, status, latency_ms)

    # ── Flushing ─────────────────────────────────────────────────────

    def flush(self) -> int:
        """Send buffered metrics to CloudWatch.  Returns count sent."""
        with self._lock:
            if not self._buffer:
                return 0
            batch = self._buffer[:]
            self._buffer.clear()

        if not self._enabled:
            logger.debug("Metrics flush skipped (not enabled): %d items", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    def _append(
        self,
        name: str,
        dimensions: list[dict[str, str]],
        value: float,
        unit: str,
        timestamp: datetime,
    ) -> None:
        point = {
            "MetricName": name,
            "Dimensions": dimensions,
            "Timestamp": timestamp,
            "Value": value,
            "Unit": unit,
        }
        with self._lock:
            self._buffer.append(point)

    def _start_flush_thread(self) -> None:
        """Start a daemon thread that flushes metrics periodically."""

        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        t = threading.Thread(target=_loop, daemon=True, name="metrics-flush")
        t.start()
        atexit.register(self.flush)
        logger.info(
            "Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS,
        )


# ── Module-level singleton ──────────────────────────────────────────
metrics = MetricsClient()
