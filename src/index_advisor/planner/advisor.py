"""
Workload-driven index recommendation.

The advisor proposes candidate indexes from the shapes of a workload and
greedily adds the one that most reduces the frequency-weighted number of
examined documents, re-running the plan estimator for every tentative
index set. Greedy selection is a heuristic: it does not guarantee the
globally cheapest index set.
"""

import logging
import numbers
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from ..catalog import ASCENDING, IndexCatalog, IndexDefinition
from ..config import AdvisorSettings, CostModel
from ..errors import (
    AdvisorBudgetExceededError,
    CatalogOpenError,
    EmptyWorkloadError,
    MalformedWorkloadError,
)
from ..metrics import ADVISOR_CANDIDATE_EVALUATIONS, ADVISOR_RUN_TIME, ADVISOR_RUNS
from ..registry import SchemaRegistry
from ..shape import QueryShape
from .estimator import PlanDecision, PlanEstimator
from utils.logging import ContextLogger
from utils.tracing import trace_operation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkloadEntry:
    """A query shape and its relative frequency."""

    shape: QueryShape
    weight: float = 1.0

    def __post_init__(self) -> None:
        if (
            isinstance(self.weight, bool)
            or not isinstance(self.weight, numbers.Real)
            or self.weight <= 0
        ):
            raise MalformedWorkloadError(
                f"Weight of {self.shape.name or 'query'} must be a positive number, "
                f"got {self.weight!r}"
            )


class Workload:
    """Ordered, read-only list of workload entries."""

    def __init__(self, entries: Iterable[WorkloadEntry | tuple[QueryShape, float]] = ()):
        self._entries = tuple(
            entry if isinstance(entry, WorkloadEntry) else WorkloadEntry(*entry)
            for entry in entries
        )

    @property
    def entries(self) -> tuple[WorkloadEntry, ...]:
        return self._entries

    def shapes(self) -> list[QueryShape]:
        return [entry.shape for entry in self._entries]

    def __iter__(self) -> Iterator[WorkloadEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)


@dataclass(frozen=True)
class AdvisorResult:
    """
    Outcome of an advisor run.

    ``indexes`` are the recommended additions, in selection order.
    ``decisions`` pairs every workload entry with its plan under the
    baseline plus the recommended indexes.
    """

    indexes: tuple[IndexDefinition, ...]
    total_cost: float
    baseline_cost: float
    evaluations: int
    partial: bool = False
    decisions: tuple[tuple[WorkloadEntry, PlanDecision], ...] = ()

    @property
    def improvement(self) -> float:
        """Fraction of the baseline cost removed by the recommendation."""
        if self.baseline_cost == 0:
            return 0.0
        return 1.0 - self.total_cost / self.baseline_cost


class IndexAdvisor:
    """
    Greedy index advisor.

    Args:
        registry: Sealed schema registry
        max_indexes: Maximum number of indexes to recommend (K)
        max_evaluations: Upper bound on tentative index sets evaluated
        cost_model: Selectivity heuristics handed to the plan estimator
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        max_indexes: int = 3,
        max_evaluations: int = 1000,
        cost_model: CostModel | None = None,
    ):
        if not registry.sealed:
            raise CatalogOpenError(
                f"Schema registry for '{registry.collection}' must be sealed before advising"
            )
        if max_indexes < 1:
            raise ValueError(f"max_indexes must be positive, got {max_indexes}")
        if max_evaluations < 1:
            raise ValueError(f"max_evaluations must be positive, got {max_evaluations}")

        self.registry = registry
        self.max_indexes = max_indexes
        self.max_evaluations = max_evaluations
        self.cost_model = cost_model or CostModel()

    @classmethod
    def from_settings(
        cls,
        registry: SchemaRegistry,
        settings: AdvisorSettings,
        cost_model: CostModel | None = None,
    ) -> "IndexAdvisor":
        return cls(
            registry,
            max_indexes=settings.max_indexes,
            max_evaluations=settings.max_evaluations,
            cost_model=cost_model,
        )

    def generate_candidates(
        self, workload: Workload, baseline: IndexCatalog | None = None
    ) -> list[IndexDefinition]:
        """
        Propose candidate indexes for ``workload``.

        Per distinct shape, two key orders are built: equality fields (most
        selective first), then sort keys, then range fields; and equality,
        range, sort. Every prefix of each becomes a candidate. One text
        index over the searchable fields is added when any shape searches
        text and the baseline has none.
        """
        existing = list(baseline) if baseline is not None else []
        taken = {index.signature() for index in existing}
        names = {index.name for index in existing}
        candidates: list[IndexDefinition] = []

        def offer(definition: IndexDefinition) -> None:
            signature = definition.signature()
            if signature in taken or definition.name in names:
                return
            taken.add(signature)
            names.add(definition.name)
            candidates.append(definition)

        seen_shapes = set()
        wants_text = False
        for entry in workload:
            shape = entry.shape
            if shape.is_text:
                wants_text = True
                continue
            if shape in seen_shapes:
                continue
            seen_shapes.add(shape)

            for keys in self._key_orders(shape):
                for length in range(1, len(keys) + 1):
                    prefix = keys[:length]
                    if self._usable(prefix):
                        offer(IndexDefinition.compound(prefix))

        has_text_index = baseline is not None and baseline.text_index() is not None
        if wants_text and not has_text_index:
            searchable = [d.name for d in self.registry.searchable_fields()]
            if searchable:
                offer(IndexDefinition.text(searchable))
            else:
                logger.warning(
                    "Workload searches text but no field is marked searchable; "
                    "no text index proposed"
                )

        logger.debug(f"Generated {len(candidates)} candidate index(es)")
        return candidates

    def _key_orders(self, shape: QueryShape) -> list[list[tuple[str, int]]]:
        equality = sorted(
            shape.equality,
            key=lambda name: (-self.registry.lookup(name).cardinality, name),
        )
        equality_keys = [(name, ASCENDING) for name in equality]
        sort_keys = [(k.field, k.direction) for k in shape.sort if k.field not in shape.equality]
        sorted_fields = {name for name, _ in sort_keys}
        range_keys = [(r.field, ASCENDING) for r in shape.ranges if r.field not in sorted_fields]

        orders = [equality_keys + sort_keys + range_keys]
        alternate = equality_keys + range_keys + sort_keys
        if alternate != orders[0]:
            orders.append(alternate)
        return orders

    def _usable(self, keys: list[tuple[str, int]]) -> bool:
        descriptors = [self.registry.lookup(name) for name, _ in keys]
        if not all(d.indexable for d in descriptors):
            return False
        return sum(1 for d in descriptors if d.is_array) <= 1

    def _evaluate(
        self, workload: Workload, catalog: IndexCatalog
    ) -> tuple[float, tuple[tuple[WorkloadEntry, PlanDecision], ...]]:
        estimator = PlanEstimator(self.registry, catalog, self.cost_model)
        decisions = tuple((entry, estimator.estimate(entry.shape)) for entry in workload)
        cost = sum(entry.weight * decision.estimated_examined for entry, decision in decisions)
        return cost, decisions

    def recommend(
        self, workload: Workload, baseline: IndexCatalog | None = None
    ) -> AdvisorResult:
        """
        Recommend up to ``max_indexes`` indexes for ``workload``.

        Args:
            workload: Query shapes with frequency weights
            baseline: Sealed catalog of indexes that already exist

        Returns:
            AdvisorResult with the selected indexes

        Raises:
            EmptyWorkloadError: If the workload is empty
            CatalogOpenError: If the baseline catalog is not sealed
            AdvisorBudgetExceededError: If ``max_evaluations`` runs out before
                the search converges; its ``result`` holds the partial selection
        """
        if not workload:
            raise EmptyWorkloadError()
        if baseline is None:
            baseline = IndexCatalog(self.registry).seal()
        elif not baseline.sealed:
            raise CatalogOpenError("Baseline catalog must be sealed before advising")

        run_log = ContextLogger(
            __name__,
            collection=self.registry.collection,
            max_indexes=self.max_indexes,
        )
        start = time.perf_counter()

        with trace_operation(
            "recommend_indexes", queries=len(workload), **run_log.get_context()
        ) as span:
            try:
                result = self._search(workload, baseline, run_log)
            except AdvisorBudgetExceededError as e:
                ADVISOR_RUNS.labels(outcome="budget_exhausted").inc()
                span.set_attribute("partial", True)
                run_log.warning(
                    f"Advisor budget exhausted after {e.max_evaluations} evaluations; "
                    f"returning {len(e.result.indexes)} index(es) found so far"
                )
                raise
            except Exception:
                ADVISOR_RUNS.labels(outcome="failed").inc()
                raise
            finally:
                ADVISOR_RUN_TIME.observe(time.perf_counter() - start)

            span.set_attribute("recommended", len(result.indexes))

        ADVISOR_RUNS.labels(outcome="converged").inc()
        run_log.info(
            f"Recommended {len(result.indexes)} index(es): weighted cost "
            f"{result.baseline_cost:,.0f} -> {result.total_cost:,.0f}",
            evaluations=result.evaluations,
        )
        return result

    def _search(
        self, workload: Workload, baseline: IndexCatalog, run_log: ContextLogger
    ) -> AdvisorResult:
        remaining = self.generate_candidates(workload, baseline)
        baseline_cost, decisions = self._evaluate(workload, baseline)

        selected: list[IndexDefinition] = []
        current = baseline
        current_cost = baseline_cost
        evaluations = 0

        while len(selected) < self.max_indexes and remaining:
            best = None  # (candidate, cost, catalog, decisions)

            for candidate in remaining:
                if candidate.is_text and current.text_index() is not None:
                    continue

                if evaluations >= self.max_evaluations:
                    partial_indexes = list(selected)
                    partial_cost, partial_decisions = current_cost, decisions
                    if best is not None and best[1] < current_cost:
                        partial_indexes.append(best[0])
                        partial_cost, partial_decisions = best[1], best[3]
                    raise AdvisorBudgetExceededError(
                        self.max_evaluations,
                        AdvisorResult(
                            indexes=tuple(partial_indexes),
                            total_cost=partial_cost,
                            baseline_cost=baseline_cost,
                            evaluations=evaluations,
                            partial=True,
                            decisions=partial_decisions,
                        ),
                    )

                evaluations += 1
                ADVISOR_CANDIDATE_EVALUATIONS.inc()
                trial = current.with_indexes([candidate])
                cost, trial_decisions = self._evaluate(workload, trial)
                if best is None or cost < best[1]:
                    best = (candidate, cost, trial, trial_decisions)

            if best is None or best[1] >= current_cost:
                break

            candidate, current_cost, current, decisions = best
            selected.append(candidate)
            remaining = [c for c in remaining if c is not candidate]
            run_log.update_context(selected=len(selected))
            run_log.debug(
                f"Selected {candidate.name}",
                cost=current_cost,
                evaluations=evaluations,
            )

        return AdvisorResult(
            indexes=tuple(selected),
            total_cost=current_cost,
            baseline_cost=baseline_cost,
            evaluations=evaluations,
            partial=False,
            decisions=decisions,
        )
