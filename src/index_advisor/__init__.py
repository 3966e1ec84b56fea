"""
Query-pattern index advisor for document collections

Predicts, for declared query shapes, whether an index scan, text scan or
collection scan would be used, and recommends compound and text indexes
for a weighted workload. Nothing is executed against a database: the
advisor reasons only about field metadata, index definitions and query
shapes.

Components:
- registry: Field type and cardinality metadata
- catalog: Declared index definitions
- shape: Query normalization
- planner: Plan estimation, index recommendation and explain output

Usage:
    from index_advisor import IndexCatalog, IndexDefinition, PlanEstimator, SchemaRegistry, parse_query

    registry = SchemaRegistry("tickets", document_count=1_000_000)
    registry.register("tenantId", "scalar", 500)
    ...
    estimator = PlanEstimator(registry.seal(), catalog.seal())
    decision = estimator.estimate(parse_query({"equality": {"tenantId": "t1"}}))
"""

from .catalog import IndexCatalog, IndexDefinition, IndexKey, IndexKind
from .errors import (
    AdvisorBudgetExceededError,
    CatalogOpenError,
    CatalogSealedError,
    ConflictingTextIndexError,
    DuplicateFieldError,
    EmptyWorkloadError,
    IndexAdvisorError,
    MalformedQueryError,
    UnknownFieldError,
)
from .planner import (
    AdvisorResult,
    IndexAdvisor,
    PlanDecision,
    PlanEstimator,
    ScanKind,
    Workload,
    WorkloadEntry,
    explain,
)
from .registry import FieldDescriptor, FieldType, SchemaRegistry
from .shape import QueryShape, QueryShapeParser, parse_find, parse_query

__version__ = "0.3.0"
__all__ = [
    "SchemaRegistry",
    "FieldDescriptor",
    "FieldType",
    "IndexCatalog",
    "IndexDefinition",
    "IndexKey",
    "IndexKind",
    "QueryShape",
    "QueryShapeParser",
    "parse_query",
    "parse_find",
    "PlanEstimator",
    "PlanDecision",
    "ScanKind",
    "IndexAdvisor",
    "AdvisorResult",
    "Workload",
    "WorkloadEntry",
    "explain",
    "IndexAdvisorError",
    "DuplicateFieldError",
    "UnknownFieldError",
    "ConflictingTextIndexError",
    "MalformedQueryError",
    "EmptyWorkloadError",
    "CatalogSealedError",
    "CatalogOpenError",
    "AdvisorBudgetExceededError",
]
