# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Prometheus metrics for TCC sweeps and outbox relay scans."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

M = TypeVar("M", Counter, Gauge, Histogram)


class MetricsRegistry:
    """Get-or-create access to metrics on one :class:`CollectorRegistry`.

    prometheus_client refuses to register a name twice, so repeated lookups
    return the metric created first. Tests pass their own
    ``CollectorRegistry`` to stay isolated from the process-wide default.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry if registry is not None else REGISTRY
        self._created: dict[str, Any] = {}

    @property
    def collector_registry(self) -> CollectorRegistry:
        return self._registry

    def counter(self, name: str, description: str, labels: Sequence[str] = ()) -> Counter:
        return self._get_or_create(Counter, name, description, labels)

    def gauge(self, name: str, description: str, labels: Sequence[str] = ()) -> Gauge:
        return self._get_or_create(Gauge, name, description, labels)

    def histogram(
        self,
        name: str,
        description: str,
        labels: Sequence[str] = (),
        buckets: Sequence[float] | None = None,
    ) -> Histogram:
        extra = {"buckets": tuple(buckets)} if buckets else {}
        return self._get_or_create(Histogram, name, description, labels, **extra)

    def _get_or_create(
        self,
        kind: Callable[..., M],
        name: str,
        description: str,
        labels: Sequence[str],
        **extra: Any,
    ) -> M:
        metric = self._created.get(name)
        if metric is None:
            metric = kind(name, description, list(labels), registry=self._registry, **extra)
            self._created[name] = metric
        return metric  # type: ignore[no-any-return]


class TransactionMetrics:
    """Named metrics for the TCC coordinator and the outbox relay.

    * ``txinsight_tcc_active_transactions``: contexts begun and not yet completed
    * ``txinsight_tcc_completions_total{phase}``: commit/rollback sweeps
    * ``txinsight_tcc_branch_failures_total{phase}``: branches whose confirm or cancel raised
    * ``txinsight_transaction_duration_seconds{operation}``: sweep and scan time
    * ``txinsight_outbox_messages_total{status}``: relay outcomes per row
    """

    def __init__(self, registry: MetricsRegistry) -> None:
        self._active = registry.gauge(
            "txinsight_tcc_active_transactions",
            "TCC transactions begun and not yet committed or rolled back",
        )
        self._completions = registry.counter(
            "txinsight_tcc_completions_total", "Completed TCC sweeps by phase", ["phase"]
        )
        self._branch_failures = registry.counter(
            "txinsight_tcc_branch_failures_total", "TCC branches whose confirm or cancel raised", ["phase"]
        )
        self._duration = registry.histogram(
            "txinsight_transaction_duration_seconds", "Duration of TCC sweeps and outbox relay scans", ["operation"]
        )
        self._outbox = registry.counter(
            "txinsight_outbox_messages_total", "Outbox messages processed by the relay, by resulting status", ["status"]
        )

    def set_active_transactions(self, count: int) -> None:
        self._active.set(count)

    def record_completion(self, phase: str, failed_branches: int, duration_s: float) -> None:
        self._completions.labels(phase=phase).inc()
        if failed_branches:
            self._branch_failures.labels(phase=phase).inc(failed_branches)
        self._duration.labels(operation=f"tcc_{phase.lower()}").observe(duration_s)

    def record_relay(self, sent: int, failed: int, duration_s: float) -> None:
        if sent:
            self._outbox.labels(status="SENT").inc(sent)
        if failed:
            self._outbox.labels(status="FAILED").inc(failed)
        self._duration.labels(operation="outbox_relay").observe(duration_s)
