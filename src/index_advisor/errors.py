"""
Exception taxonomy for the index advisor.

Input errors signal caller misuse and are never retried. Resource errors
signal lifecycle violations (sealed/open catalogs) or an exhausted search
budget.
"""

from typing import Any


class IndexAdvisorError(Exception):
    """Base class for all advisor errors."""

    pass


class InputError(IndexAdvisorError):
    """Raised when the caller supplies invalid metadata, indexes or queries."""

    pass


class ResourceError(IndexAdvisorError):
    """Raised on lifecycle violations or exhausted evaluation budgets."""

    pass


class DuplicateFieldError(InputError):
    """Raised when a field is registered twice."""

    def __init__(self, field: str):
        super().__init__(f"Field already registered: {field}")
        self.field = field


class UnknownFieldError(InputError):
    """Raised when a field is not present in the schema registry."""

    def __init__(self, field: str):
        super().__init__(f"Unknown field: {field}")
        self.field = field


class ConflictingTextIndexError(InputError):
    """Raised when a second text index is added to a catalog."""

    def __init__(self, existing: str, rejected: str):
        super().__init__(
            f"Collection already has text index '{existing}', cannot add '{rejected}'"
        )
        self.existing = existing
        self.rejected = rejected


class InvalidIndexError(InputError):
    """Raised when an index definition is structurally invalid."""

    pass


class MalformedQueryError(InputError):
    """Raised when a query document cannot be normalized into a shape."""

    pass


class MalformedWorkloadError(InputError):
    """Raised when a workload entry carries an invalid weight."""

    pass


class DocumentValidationError(InputError):
    """Raised when a session document does not match its JSON schema."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class EmptyWorkloadError(InputError):
    """Raised when the advisor is given no queries."""

    def __init__(self) -> None:
        super().__init__("Workload contains no query shapes")


class CatalogSealedError(ResourceError):
    """Raised when a sealed registry or catalog is mutated."""

    pass


class CatalogOpenError(ResourceError):
    """Raised when evaluation starts against an unsealed registry or catalog."""

    pass


class AdvisorBudgetExceededError(ResourceError):
    """
    Raised when the advisor runs out of candidate evaluations.

    The best selection found so far is available as ``result`` and is
    tagged ``partial=True``.
    """

    def __init__(self, max_evaluations: int, result: Any):
        super().__init__(
            f"Advisor exhausted its budget of {max_evaluations} candidate evaluations "
            f"before converging"
        )
        self.max_evaluations = max_evaluations
        self.result = result
