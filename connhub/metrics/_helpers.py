"""Registration of the registry's Prometheus collectors."""

from typing import TypeVar

from prometheus_client import REGISTRY, Counter, Gauge
from prometheus_client.registry import CollectorRegistry

MetricT = TypeVar("MetricT", Counter, Gauge)


def register_metric(
    metric_cls: type[MetricT],
    name: str,
    doc: str,
    labels: list[str] | None = None,
    registry: CollectorRegistry = REGISTRY,
) -> MetricT:
    """
    Create a metric, or return the one already registered under name.

    Importing connhub.metrics twice in one process (uvicorn --reload,
    test collection) must not fail with a duplicate timeseries error.

    Raises:
        TypeError: If name is registered with a different metric type.
    """
    existing = registry._names_to_collectors.get(name)
    if existing is None:
        return metric_cls(name, doc, labels or [], registry=registry)
    if not isinstance(existing, metric_cls):
        raise TypeError(
            f"Metric {name} is already registered as "
            f"{type(existing).__name__}, not {metric_cls.__name__}"
        )
    return existing
