"""
Query planning and index recommendation.

Provides the plan estimator, the greedy workload advisor and the explain
reporter.
"""

from .advisor import AdvisorResult, IndexAdvisor, Workload, WorkloadEntry
from .estimator import CandidatePlan, PlanDecision, PlanEstimator, ScanKind
from .explain import ExplainReporter, explain, explain_shape

__all__ = [
    "ScanKind",
    "CandidatePlan",
    "PlanDecision",
    "PlanEstimator",
    "WorkloadEntry",
    "Workload",
    "AdvisorResult",
    "IndexAdvisor",
    "ExplainReporter",
    "explain",
    "explain_shape",
]
