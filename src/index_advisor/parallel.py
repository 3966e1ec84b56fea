"""
Parallel plan estimation.

Sealed registries and catalogs are immutable, so one PlanEstimator can be
shared by every worker thread without locking.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import UTC, datetime
from typing import Any

from opentelemetry import trace

from utils.tracing import add_span_attributes, trace_operation

from .metrics import EXPLAIN_ACTIVE_WORKERS
from .planner.estimator import PlanEstimator
from .planner.explain import ExplainReporter
from .shape import QueryShape

logger = logging.getLogger(__name__)


class ParallelExplainer:
    """
    Explains many query shapes concurrently.

    Args:
        max_workers: Maximum worker threads (default: 4)
        fail_fast: Re-raise the first estimation error instead of
            collecting it
    """

    def __init__(self, max_workers: int = 4, fail_fast: bool = False):
        if max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {max_workers}")
        self.max_workers = max_workers
        self.fail_fast = fail_fast
        self.reporter = ExplainReporter()
        self._metrics_lock = threading.Lock()

    def _explain_one(self, estimator: PlanEstimator, shape: QueryShape) -> dict[str, Any]:
        return self.reporter.render(shape, estimator.estimate(shape))

    def explain_all(
        self, estimator: PlanEstimator, shapes: list[QueryShape]
    ) -> dict[str, Any]:
        """
        Explain ``shapes`` in parallel.

        Returns:
            Aggregated results dictionary:
            {
                'total': int,
                'successful': int,
                'failed': int,
                'results': list of explain records in input order
                           (None where estimation failed),
                'errors': list of {'position', 'query', 'error', 'type'},
                'duration_seconds': float,
                'timestamp': str (ISO format),
            }
        """
        with trace_operation(
            "parallel_explain",
            kind=trace.SpanKind.INTERNAL,
            shape_count=len(shapes),
            max_workers=self.max_workers,
        ):
            start_time = datetime.now(UTC)
            results: dict[str, Any] = {
                "total": len(shapes),
                "successful": 0,
                "failed": 0,
                "results": [None] * len(shapes),
                "errors": [],
            }

            if shapes:
                with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                    future_to_position = {
                        executor.submit(self._explain_one, estimator, shape): position
                        for position, shape in enumerate(shapes)
                    }
                    with self._metrics_lock:
                        EXPLAIN_ACTIVE_WORKERS.set(min(self.max_workers, len(shapes)))

                    try:
                        for future in as_completed(future_to_position):
                            position = future_to_position[future]
                            shape = shapes[position]
                            try:
                                results["results"][position] = future.result()
                                results["successful"] += 1
                            except Exception as e:
                                if self.fail_fast:
                                    for pending in future_to_position:
                                        pending.cancel()
                                    raise
                                results["failed"] += 1
                                results["errors"].append(
                                    {
                                        "position": position,
                                        "query": shape.name,
                                        "error": str(e),
                                        "type": type(e).__name__,
                                    }
                                )
                                logger.error(
                                    f"Failed to explain {shape.name or f'query #{position}'}: {e}"
                                )
                    finally:
                        with self._metrics_lock:
                            EXPLAIN_ACTIVE_WORKERS.set(0)
            else:
                logger.warning("No query shapes to explain")

            results["errors"].sort(key=lambda error: error["position"])
            end_time = datetime.now(UTC)
            results["duration_seconds"] = (end_time - start_time).total_seconds()
            results["timestamp"] = end_time.isoformat()
            add_span_attributes(successful=results["successful"], failed=results["failed"])

            logger.info(
                f"Explained {results['successful']}/{results['total']} queries "
                f"with {self.max_workers} workers ({results['failed']} failed)"
            )
            return results
