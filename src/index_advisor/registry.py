"""
Schema registry holding per-field type and cardinality metadata.

The registry accumulates field descriptors during setup and is then sealed.
A sealed registry is immutable and can be shared between planner threads.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum

from .errors import CatalogSealedError, DuplicateFieldError, UnknownFieldError

logger = logging.getLogger(__name__)


class FieldType(str, Enum):
    """Declared value type of a document field."""

    SCALAR = "scalar"
    ARRAY = "array"
    DATE = "date"


@dataclass(frozen=True)
class FieldDescriptor:
    """Metadata for a single document field."""

    name: str
    type: FieldType
    cardinality: int
    indexable: bool = True
    searchable: bool = False  # candidate for a proposed text index

    @property
    def is_array(self) -> bool:
        return self.type is FieldType.ARRAY


class SchemaRegistry:
    """
    Field metadata for one collection.

    Args:
        collection: Collection name (used in reports and generated commands)
        document_count: Estimated number of documents in the collection
    """

    def __init__(self, collection: str, document_count: int):
        if not collection:
            raise ValueError("collection name must not be empty")
        if document_count < 0:
            raise ValueError(f"document_count must be >= 0, got {document_count}")

        self.collection = collection
        self.document_count = document_count
        self._fields: dict[str, FieldDescriptor] = {}
        self._sealed = False
        self._lock = threading.Lock()

    @property
    def sealed(self) -> bool:
        return self._sealed

    def register(
        self,
        name: str,
        type: FieldType | str,
        cardinality: int,
        indexable: bool = True,
        searchable: bool = False,
    ) -> FieldDescriptor:
        """
        Register a field.

        Args:
            name: Field name (dotted paths are allowed)
            type: Declared type, a FieldType or its string value
            cardinality: Estimated distinct-value count, must be positive
            indexable: Whether indexes may include the field
            searchable: Whether the advisor may put the field in a text index

        Returns:
            The registered FieldDescriptor

        Raises:
            DuplicateFieldError: If the field is already registered
            CatalogSealedError: If the registry has been sealed
            ValueError: On an unknown type or a non-positive cardinality
        """
        field_type = FieldType(type)
        if not name:
            raise ValueError("field name must not be empty")
        if isinstance(cardinality, bool) or not isinstance(cardinality, int) or cardinality < 1:
            raise ValueError(f"cardinality for '{name}' must be a positive integer")

        descriptor = FieldDescriptor(
            name=name,
            type=field_type,
            cardinality=cardinality,
            indexable=indexable,
            searchable=searchable,
        )

        with self._lock:
            if self._sealed:
                raise CatalogSealedError(
                    f"Schema registry for '{self.collection}' is sealed; cannot register '{name}'"
                )
            if name in self._fields:
                raise DuplicateFieldError(name)
            self._fields[name] = descriptor

        logger.debug(f"Registered field {name} ({field_type.value}, cardinality={cardinality})")
        return descriptor

    def lookup(self, name: str) -> FieldDescriptor:
        """Return the descriptor for ``name`` or raise UnknownFieldError."""
        try:
            return self._fields[name]
        except KeyError:
            raise UnknownFieldError(name) from None

    def fields(self) -> list[FieldDescriptor]:
        """Return all descriptors in registration order."""
        return list(self._fields.values())

    def searchable_fields(self) -> list[FieldDescriptor]:
        return [f for f in self._fields.values() if f.searchable and f.indexable]

    def seal(self) -> "SchemaRegistry":
        """Freeze the registry. Sealing twice is a no-op."""
        with self._lock:
            if not self._sealed:
                self._sealed = True
                logger.info(
                    f"Schema registry sealed: collection={self.collection}, "
                    f"fields={len(self._fields)}, documents={self.document_count}"
                )
        return self

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        state = "sealed" if self._sealed else "open"
        return f"SchemaRegistry({self.collection!r}, fields={len(self)}, {state})"
