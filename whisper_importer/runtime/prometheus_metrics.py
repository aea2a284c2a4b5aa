from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Gauge, push_to_gateway

if TYPE_CHECKING:
    from whisper_importer.runtime.driver import ImportResult

LOGGER = logging.getLogger(__name__)


class ImportMetricsClient:
    """Prometheus Pushgateway client for import runs.

    Expected environment:
    - PROMETHEUS_PUSHGATEWAY_URL: URL to the Pushgateway.
      Example: http://pushgateway.monitoring.svc.cluster.local:9091

    Optional:
    - PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON: JSON object used as grouping key,
      e.g. {"host": "graphite-01"}. Without it, runs from different hosts
      overwrite each other's metrics.

    Delivery is best-effort: callers log failures and carry on.
    """

    def __init__(self) -> None:
        self._pushgateway_url = os.environ.get("PROMETHEUS_PUSHGATEWAY_URL")
        self._grouping_key = self._load_grouping_key()
        self._registry = CollectorRegistry()
        self._gauges: dict[str, Gauge] = {}

    def is_enabled(self) -> bool:
        return self._pushgateway_url is not None

    @staticmethod
    def _load_grouping_key() -> dict[str, str]:
        raw = os.environ.get("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON")
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning(
                "Invalid PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON; ignoring"
            )
            return {}

        if not isinstance(data, dict):
            return {}

        return {
            key: value
            for key, value in data.items()
            if isinstance(key, str) and isinstance(value, str)
        }

    def set_gauge(
        self,
        *,
        name: str,
        value: float,
        labels: dict[str, str],
    ) -> None:
        gauge = self._gauges.get(name)
        if gauge is None:
            gauge = Gauge(
                name,
                documentation=name,
                labelnames=sorted(labels),
                registry=self._registry,
            )
            self._gauges[name] = gauge

        gauge.labels(**labels).set(value)

    def record_run(
        self,
        *,
        results: list[ImportResult],
        failed: int,
        duration_seconds: float,
    ) -> None:
        labels = {"status": "failed" if failed else "success"}

        self.set_gauge(
            name="whisper_import_metrics_imported",
            value=float(len(results)),
            labels=labels,
        )
        self.set_gauge(
            name="whisper_import_metrics_failed",
            value=float(failed),
            labels=labels,
        )
        self.set_gauge(
            name="whisper_import_chunks_written",
            value=float(sum(result.chunks_written for result in results)),
            labels=labels,
        )
        self.set_gauge(
            name="whisper_import_points_written",
            value=float(sum(result.points_written for result in results)),
            labels=labels,
        )
        self.set_gauge(
            name="whisper_import_duration_seconds",
            value=duration_seconds,
            labels=labels,
        )

    def push_all(self, *, job: str) -> None:
        if not self._pushgateway_url:
            return

        push_to_gateway(
            gateway=self._pushgateway_url,
            job=job,
            registry=self._registry,
            grouping_key=self._grouping_key,
        )

        LOGGER.info(
            "Prometheus metrics pushed",
            extra={"job": job, "grouping_key": self._grouping_key},
        )
