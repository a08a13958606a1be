"""
Prometheus metrics for connection registry monitoring.

Tracks the number of registered connections and the outcome of every
per-handle dispatch (sent, skipped because not ready, failed).
"""

from prometheus_client import Counter, Gauge

from connhub.metrics._helpers import register_metric

registry_connections_registered = register_metric(
    Gauge,
    "registry_connections_registered",
    "Number of connections currently registered",
)

registry_dispatch_total = register_metric(
    Counter,
    "registry_dispatch_total",
    "Total events handed to connections",
    ["operation"],  # broadcast, multicast
)

registry_dispatch_skipped_total = register_metric(
    Counter,
    "registry_dispatch_skipped_total",
    "Total dispatches skipped because the connection was not ready",
    ["operation"],
)

registry_dispatch_failures_total = register_metric(
    Counter,
    "registry_dispatch_failures_total",
    "Total per-connection send or disconnect failures",
    ["operation"],  # broadcast, multicast, disconnect, disconnect_all
)

registry_disconnects_total = register_metric(
    Counter,
    "registry_disconnects_total",
    "Total connections disconnected through the registry",
)


__all__ = [
    "registry_connections_registered",
    "registry_dispatch_total",
    "registry_dispatch_skipped_total",
    "registry_dispatch_failures_total",
    "registry_disconnects_total",
]
