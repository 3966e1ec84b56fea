"""
Configuration for the planner cost model and the advisor search.

Values default to the constants below and can be overridden through
environment variables, mirroring how the CLI reads its other settings.

Environment variables:
    ADVISOR_RANGE_SELECTIVITY: Fraction kept per range operator (default: 0.5)
    ADVISOR_TEXT_TERM_SELECTIVITY: Fraction matched per text term (default: 0.05)
    ADVISOR_MAX_INDEXES: Maximum indexes to recommend (default: 3)
    ADVISOR_MAX_EVALUATIONS: Candidate evaluation budget (default: 1000)
    ADVISOR_WORKERS: Threads used for parallel explain (default: 4)
"""

import os
from dataclasses import dataclass

DEFAULT_RANGE_SELECTIVITY = 0.5
DEFAULT_TEXT_TERM_SELECTIVITY = 0.05
DEFAULT_MAX_INDEXES = 3
DEFAULT_MAX_EVALUATIONS = 1000
DEFAULT_WORKERS = 4


def _fraction(name: str, value: float) -> float:
    if not 0.0 < value <= 1.0:
        raise ValueError(f"{name} must be in (0, 1], got {value}")
    return value


def _positive(name: str, value: int) -> int:
    if value < 1:
        raise ValueError(f"{name} must be a positive integer, got {value}")
    return value


@dataclass(frozen=True)
class CostModel:
    """Heuristic selectivity constants used by the plan estimator."""

    range_selectivity: float = DEFAULT_RANGE_SELECTIVITY
    text_term_selectivity: float = DEFAULT_TEXT_TERM_SELECTIVITY

    def __post_init__(self) -> None:
        _fraction("range_selectivity", self.range_selectivity)
        _fraction("text_term_selectivity", self.text_term_selectivity)

    @classmethod
    def from_env(cls) -> "CostModel":
        return cls(
            range_selectivity=float(
                os.getenv("ADVISOR_RANGE_SELECTIVITY", DEFAULT_RANGE_SELECTIVITY)
            ),
            text_term_selectivity=float(
                os.getenv("ADVISOR_TEXT_TERM_SELECTIVITY", DEFAULT_TEXT_TERM_SELECTIVITY)
            ),
        )


@dataclass(frozen=True)
class AdvisorSettings:
    """Search bounds for the advisor and the parallel explainer."""

    max_indexes: int = DEFAULT_MAX_INDEXES
    max_evaluations: int = DEFAULT_MAX_EVALUATIONS
    workers: int = DEFAULT_WORKERS

    def __post_init__(self) -> None:
        _positive("max_indexes", self.max_indexes)
        _positive("max_evaluations", self.max_evaluations)
        _positive("workers", self.workers)

    @classmethod
    def from_env(cls) -> "AdvisorSettings":
        return cls(
            max_indexes=int(os.getenv("ADVISOR_MAX_INDEXES", DEFAULT_MAX_INDEXES)),
            max_evaluations=int(
                os.getenv("ADVISOR_MAX_EVALUATIONS", DEFAULT_MAX_EVALUATIONS)
            ),
            workers=int(os.getenv("ADVISOR_WORKERS", DEFAULT_WORKERS)),
        )
