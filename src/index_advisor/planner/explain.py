"""
Explain output for plan decisions.

Renders a PlanDecision and its query shape into a plain, JSON-serializable
record, with a stage tree modeled on document-store explain output.
"""

from typing import Any

from ..shape import QueryShape
from .estimator import PlanDecision, PlanEstimator, ScanKind


class ExplainReporter:
    """
    Formatter for plan decisions.

    Every record carries the keys ``scanKind``, ``indexUsed``,
    ``inMemorySort`` and ``estimatedExamined``, plus the normalized
    ``queryShape``, a ``winningPlan`` stage tree and ``rejectedPlans``.
    """

    def render(self, shape: QueryShape, decision: PlanDecision) -> dict[str, Any]:
        return {
            "queryShape": shape.to_document(),
            "scanKind": decision.scan_kind.value,
            "indexUsed": decision.index_name,
            "inMemorySort": decision.in_memory_sort,
            "estimatedExamined": decision.estimated_examined,
            "winningPlan": self._winning_plan(shape, decision),
            "rejectedPlans": [
                {
                    "indexUsed": plan.index.name,
                    "matchedPrefix": plan.matched_prefix,
                    "inMemorySort": plan.in_memory_sort,
                    "estimatedExamined": plan.estimated_examined,
                }
                for plan in decision.rejected
            ],
        }

    @staticmethod
    def _winning_plan(shape: QueryShape, decision: PlanDecision) -> dict[str, Any]:
        if decision.scan_kind is ScanKind.COLLECTION_SCAN:
            stage: dict[str, Any] = {"stage": "COLLSCAN", "direction": "forward"}
        elif decision.scan_kind is ScanKind.TEXT_SCAN:
            stage = {
                "stage": "TEXT",
                "indexName": decision.index_name,
                "terms": list(shape.text_terms),
            }
        else:
            stage = {
                "stage": "FETCH",
                "inputStage": {
                    "stage": "IXSCAN",
                    "indexName": decision.index_name,
                    "keyPattern": decision.index.key_pattern,
                    "matchedPrefix": decision.matched_prefix,
                    "direction": decision.direction,
                },
            }

        if decision.in_memory_sort:
            sort_pattern: dict[str, Any] = {k.field: k.direction for k in shape.sort}
            if shape.sort_by_relevance:
                sort_pattern["score"] = {"$meta": "textScore"}
            stage = {"stage": "SORT", "sortPattern": sort_pattern, "inputStage": stage}

        if shape.limit:
            stage = {"stage": "LIMIT", "limitAmount": shape.limit, "inputStage": stage}

        return stage


_reporter = ExplainReporter()


def explain(shape: QueryShape, decision: PlanDecision) -> dict[str, Any]:
    """Render ``decision`` for ``shape`` with the default reporter."""
    return _reporter.render(shape, decision)


def explain_shape(estimator: PlanEstimator, shape: QueryShape) -> dict[str, Any]:
    """Estimate and render ``shape`` in one step."""
    return _reporter.render(shape, estimator.estimate(shape))
