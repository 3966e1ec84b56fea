"""
Plan estimation.

Decides which declared index a query shape would use, whether the index
order satisfies the requested sort, and roughly how many documents would be
examined. The decision procedure is deterministic: identical shapes and
catalogs always yield identical decisions.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum

from ..catalog import IndexCatalog, IndexDefinition, IndexKey
from ..config import CostModel
from ..errors import CatalogOpenError
from ..metrics import PLANS_ESTIMATED
from ..registry import SchemaRegistry
from ..shape import QueryShape, SortKey
from utils.tracing import trace_operation

logger = logging.getLogger(__name__)

FORWARD = "forward"
BACKWARD = "backward"


class ScanKind(str, Enum):
    COLLECTION_SCAN = "collection-scan"
    INDEX_SCAN = "index-scan"
    TEXT_SCAN = "text-scan"


@dataclass(frozen=True)
class CandidatePlan:
    """One index considered for a shape, with its estimate."""

    index: IndexDefinition
    matched_prefix: int
    in_memory_sort: bool
    estimated_examined: int
    cost: float
    direction: str = FORWARD


@dataclass(frozen=True)
class PlanDecision:
    """Planner outcome for one (shape, catalog) pair."""

    scan_kind: ScanKind
    index: IndexDefinition | None
    in_memory_sort: bool
    estimated_examined: int
    matched_prefix: int = 0
    direction: str = FORWARD
    candidates: tuple[CandidatePlan, ...] = ()

    @property
    def index_name(self) -> str | None:
        return self.index.name if self.index is not None else None

    @property
    def rejected(self) -> tuple[CandidatePlan, ...]:
        return tuple(c for c in self.candidates if c.index != self.index)


def _sort_direction(tail: tuple[IndexKey, ...], sort_keys: tuple[SortKey, ...]) -> str | None:
    """
    Return the walk direction that yields ``sort_keys`` from the index keys
    in ``tail``, or None if no walk does.
    """
    if not sort_keys:
        return FORWARD
    if len(tail) < len(sort_keys):
        return None

    pairs = list(zip(tail, sort_keys))
    if any(key.field != sort.field for key, sort in pairs):
        return None
    if all(key.direction == sort.direction for key, sort in pairs):
        return FORWARD
    if all(key.direction == -sort.direction for key, sort in pairs):
        return BACKWARD
    return None


class PlanEstimator:
    """
    Plan estimator over a sealed registry and catalog.

    Args:
        registry: Sealed schema registry
        catalog: Sealed index catalog
        cost_model: Selectivity heuristics (defaults to CostModel())

    Raises:
        CatalogOpenError: If the registry or the catalog is still open
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        catalog: IndexCatalog,
        cost_model: CostModel | None = None,
    ):
        if not registry.sealed:
            raise CatalogOpenError(
                f"Schema registry for '{registry.collection}' must be sealed before estimation"
            )
        if not catalog.sealed:
            raise CatalogOpenError("Index catalog must be sealed before estimation")

        self.registry = registry
        self.catalog = catalog
        self.cost_model = cost_model or CostModel()
        self._indexes = tuple(catalog.list_indexes())
        self._text_index = catalog.text_index()

    def estimate(self, shape: QueryShape) -> PlanDecision:
        """
        Estimate the plan for ``shape``.

        Raises:
            UnknownFieldError: If the shape references an unregistered field
        """
        with trace_operation("estimate_plan", query=shape.name or "anonymous") as span:
            for field_name in sorted(shape.referenced_fields):
                self.registry.lookup(field_name)

            if shape.is_text:
                decision = self._text_plan(shape)
            else:
                decision = self._indexed_plan(shape)

            span.set_attribute("scan_kind", decision.scan_kind.value)

        PLANS_ESTIMATED.labels(scan_kind=decision.scan_kind.value).inc()
        logger.debug(
            f"Plan for {shape.name or '<anonymous>'}: {decision.scan_kind.value} "
            f"via {decision.index_name or 'no index'}, examined={decision.estimated_examined}, "
            f"in_memory_sort={decision.in_memory_sort}"
        )
        return decision

    def _collection_scan(
        self, shape: QueryShape, candidates: tuple[CandidatePlan, ...] = ()
    ) -> PlanDecision:
        return PlanDecision(
            scan_kind=ScanKind.COLLECTION_SCAN,
            index=None,
            in_memory_sort=shape.requests_sort,
            estimated_examined=self.registry.document_count,
            candidates=candidates,
        )

    def _text_plan(self, shape: QueryShape) -> PlanDecision:
        if shape.unsatisfiable or self._text_index is None:
            return self._collection_scan(shape)

        # Terms are OR-ed: a document matches if it contains any of them
        miss = (1.0 - self.cost_model.text_term_selectivity) ** len(shape.text_terms)
        # rounded first so float noise does not push ceil() up by one
        examined = math.ceil(round((1.0 - miss) * self.registry.document_count, 6))

        return PlanDecision(
            scan_kind=ScanKind.TEXT_SCAN,
            index=self._text_index,
            in_memory_sort=False,
            estimated_examined=examined,
        )

    def _indexed_plan(self, shape: QueryShape) -> PlanDecision:
        if not (shape.equality or shape.ranges or shape.sort):
            return self._collection_scan(shape)

        # Equality-bound fields are constant, so they never disturb the order
        sort_keys = tuple(k for k in shape.sort if k.field not in shape.equality)

        ranked = []
        for position, index in enumerate(self._indexes):
            if index.is_text:
                continue
            plan = self._score(index, shape, sort_keys)
            if plan is not None:
                ranked.append((plan, position))

        if not ranked:
            return self._collection_scan(shape)

        ranked.sort(
            key=lambda item: (item[0].cost, item[0].in_memory_sort, -item[0].matched_prefix, item[1])
        )
        best = ranked[0][0]
        return PlanDecision(
            scan_kind=ScanKind.INDEX_SCAN,
            index=best.index,
            in_memory_sort=best.in_memory_sort,
            estimated_examined=best.estimated_examined,
            matched_prefix=best.matched_prefix,
            direction=best.direction,
            candidates=tuple(plan for plan, _ in ranked),
        )

    def _score(
        self,
        index: IndexDefinition,
        shape: QueryShape,
        sort_keys: tuple[SortKey, ...],
    ) -> CandidatePlan | None:
        keys = index.keys
        remaining = float(self.registry.document_count)

        equality_prefix = 0
        for key in keys:
            if key.field not in shape.equality:
                break
            remaining /= self.registry.lookup(key.field).cardinality
            equality_prefix += 1

        matched_prefix = equality_prefix
        range_used = None
        if equality_prefix < len(keys):
            range_used = shape.range_for(keys[equality_prefix].field)
            if range_used is not None:
                remaining *= self.cost_model.range_selectivity ** len(range_used.operators)
                matched_prefix += 1

        if matched_prefix == 0:
            return None

        direction = _sort_direction(keys[equality_prefix:], sort_keys)
        in_memory_sort = direction is None
        if in_memory_sort and not all(k.field in index.fields for k in sort_keys):
            # The index does not even carry the sort keys
            return None

        if index.unique and equality_prefix == len(keys):
            remaining = min(remaining, 1.0)

        consumed_all = (
            equality_prefix == len(shape.equality)
            and len(shape.ranges) == (1 if range_used is not None else 0)
        )
        if shape.limit and consumed_all and not in_memory_sort:
            remaining = min(remaining, float(shape.limit))

        return CandidatePlan(
            index=index,
            matched_prefix=matched_prefix,
            in_memory_sort=in_memory_sort,
            estimated_examined=math.ceil(round(remaining, 6)),
            cost=remaining,
            direction=direction or FORWARD,
        )
