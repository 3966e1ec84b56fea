"""
Prometheus metrics for plan estimation and advisor runs.
"""

from prometheus_client import Counter, Gauge, Histogram

from utils.metrics import get_or_create_metric

PLANS_ESTIMATED = get_or_create_metric(
    lambda: Counter(
        "advisor_plans_estimated_total",
        "Query plans estimated",
        ["scan_kind"],  # collection-scan, index-scan, text-scan
    ),
    "advisor_plans_estimated",
)

ADVISOR_RUNS = get_or_create_metric(
    lambda: Counter(
        "advisor_runs_total",
        "Advisor runs by outcome",
        ["outcome"],  # converged, budget_exhausted, failed
    ),
    "advisor_runs",
)

ADVISOR_CANDIDATE_EVALUATIONS = get_or_create_metric(
    lambda: Counter(
        "advisor_candidate_evaluations_total",
        "Tentative index sets evaluated against a workload",
    ),
    "advisor_candidate_evaluations",
)

ADVISOR_RUN_TIME = get_or_create_metric(
    lambda: Histogram(
        "advisor_run_seconds",
        "Wall time of one advisor run",
        buckets=[0.001, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0],
    ),
    "advisor_run_seconds",
)

EXPLAIN_ACTIVE_WORKERS = get_or_create_metric(
    lambda: Gauge(
        "advisor_explain_active_workers",
        "Worker threads currently estimating plans",
    ),
    "advisor_explain_active_workers",
)
