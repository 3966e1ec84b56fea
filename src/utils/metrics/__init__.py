"""
Prometheus metric helpers.

Usage:
    from utils.metrics import get_or_create_metric

    PLANS_ESTIMATED = get_or_create_metric(
        lambda: Counter("advisor_plans_estimated_total", "Plans estimated", ["scan_kind"]),
        "advisor_plans_estimated",
    )
"""

import logging
from typing import Callable, TypeVar

from prometheus_client import REGISTRY, CollectorRegistry, start_http_server

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a metric, or return the one already registered under ``metric_name``.

    Modules can be imported more than once (test runners, reloads), and a
    second registration of the same name raises ValueError in
    prometheus_client.

    Args:
        metric_factory: Callable that creates the metric
        metric_name: Registered name of the metric (counters are registered
            without their ``_total`` suffix)
        registry: Prometheus registry to look the metric up in

    Returns:
        The metric instance (either newly created or existing)
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        raise


def start_metrics_server(port: int, registry: CollectorRegistry = REGISTRY) -> None:
    """Expose registered metrics over HTTP on ``port``."""
    start_http_server(port, registry=registry)
    logger.info(f"Metrics server listening on port {port}")


__all__ = ["get_or_create_metric", "start_metrics_server"]
