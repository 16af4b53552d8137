"""txinsight observability — Prometheus metrics."""

from txinsight.observability.metrics import MetricsRegistry, TransactionMetrics

__all__ = ["MetricsRegistry", "TransactionMetrics"]
