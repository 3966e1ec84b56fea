"""
Index catalog storing declared index definitions.

Definitions keep their key order, since the planner only uses an index for
filtering and sorting when the query's fields line up with that order.
Insertion order is preserved and used as the final tie-break between
equally good indexes.
"""

import logging
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from .errors import CatalogSealedError, ConflictingTextIndexError, InvalidIndexError
from .registry import SchemaRegistry

logger = logging.getLogger(__name__)

ASCENDING = 1
DESCENDING = -1
TEXT = "text"


class IndexKind(str, Enum):
    SINGLE = "single"
    COMPOUND = "compound"
    MULTIKEY = "multikey"
    TEXT = "text"


@dataclass(frozen=True)
class IndexKey:
    """One (field, direction) component of an index key pattern."""

    field: str
    direction: int | str = ASCENDING

    def __str__(self) -> str:
        return f"{self.field}_{self.direction}"


def _coerce_key(key: "IndexKey | Sequence | str") -> IndexKey:
    if isinstance(key, IndexKey):
        return key
    if isinstance(key, str):
        return IndexKey(key, ASCENDING)
    if isinstance(key, Sequence) and len(key) == 2:
        return IndexKey(key[0], key[1])
    raise InvalidIndexError(f"Invalid index key: {key!r}")


@dataclass(frozen=True)
class IndexDefinition:
    """
    Declared index.

    Use the ``compound``, ``single``, ``multikey`` and ``text`` constructors
    rather than building instances directly; they pick the kind and a
    conventional name.
    """

    name: str
    kind: IndexKind
    keys: tuple[IndexKey, ...]
    unique: bool = False
    sparse: bool = False
    weights: tuple[tuple[str, int], ...] = ()
    expire_after_seconds: int | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidIndexError("Index name must not be empty")
        if not self.keys:
            raise InvalidIndexError(f"Index '{self.name}' has no keys")

        fields = [k.field for k in self.keys]
        if any(not isinstance(f, str) or not f for f in fields):
            raise InvalidIndexError(f"Index '{self.name}' has an empty field name")
        if len(set(fields)) != len(fields):
            raise InvalidIndexError(f"Index '{self.name}' repeats a field: {fields}")

        if self.kind is IndexKind.TEXT:
            if any(k.direction != TEXT for k in self.keys):
                raise InvalidIndexError(f"Text index '{self.name}' may only hold text keys")
        else:
            for k in self.keys:
                if isinstance(k.direction, bool) or k.direction not in (ASCENDING, DESCENDING):
                    raise InvalidIndexError(
                        f"Index '{self.name}' has invalid direction {k.direction!r} "
                        f"for field '{k.field}'"
                    )
            if self.weights:
                raise InvalidIndexError(f"Only text indexes take weights ('{self.name}')")
            if self.kind in (IndexKind.SINGLE, IndexKind.MULTIKEY) and len(self.keys) != 1:
                raise InvalidIndexError(
                    f"{self.kind.value} index '{self.name}' must have exactly one key"
                )

    @staticmethod
    def default_name(keys: Iterable[IndexKey]) -> str:
        return "_".join(str(k) for k in keys)

    @classmethod
    def compound(
        cls,
        keys: Sequence["IndexKey | Sequence | str"],
        name: str | None = None,
        **options,
    ) -> "IndexDefinition":
        """Build a compound (or, with one key, single-field) index."""
        index_keys = tuple(_coerce_key(k) for k in keys)
        kind = IndexKind.COMPOUND if len(index_keys) > 1 else IndexKind.SINGLE
        return cls(
            name=name or cls.default_name(index_keys),
            kind=kind,
            keys=index_keys,
            **options,
        )

    @classmethod
    def single(
        cls, field_name: str, direction: int = ASCENDING, name: str | None = None, **options
    ) -> "IndexDefinition":
        keys = (IndexKey(field_name, direction),)
        return cls(name=name or cls.default_name(keys), kind=IndexKind.SINGLE, keys=keys, **options)

    @classmethod
    def multikey(
        cls, field_name: str, direction: int = ASCENDING, name: str | None = None, **options
    ) -> "IndexDefinition":
        keys = (IndexKey(field_name, direction),)
        return cls(
            name=name or cls.default_name(keys), kind=IndexKind.MULTIKEY, keys=keys, **options
        )

    @classmethod
    def text(
        cls,
        fields: Sequence[str],
        name: str | None = None,
        weights: dict[str, int] | None = None,
        **options,
    ) -> "IndexDefinition":
        keys = tuple(IndexKey(f, TEXT) for f in fields)
        weight_items = tuple(sorted((weights or {}).items()))
        return cls(
            name=name or cls.default_name(keys),
            kind=IndexKind.TEXT,
            keys=keys,
            weights=weight_items,
            **options,
        )

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(k.field for k in self.keys)

    @property
    def is_text(self) -> bool:
        return self.kind is IndexKind.TEXT

    @property
    def key_pattern(self) -> dict[str, int | str]:
        return {k.field: k.direction for k in self.keys}

    def signature(self) -> tuple:
        """Identity of the key pattern, independent of the index name."""
        if self.is_text:
            return (IndexKind.TEXT.value, tuple(sorted(self.fields)))
        return ("btree", tuple((k.field, k.direction) for k in self.keys))


class IndexCatalog:
    """
    Declared indexes of one collection.

    Args:
        registry: Optional schema registry; when given, index fields are
            checked against it as indexes are added
    """

    def __init__(self, registry: SchemaRegistry | None = None):
        self.registry = registry
        self._indexes: list[IndexDefinition] = []
        self._by_name: dict[str, IndexDefinition] = {}
        self._sealed = False
        self._lock = threading.Lock()

    @property
    def sealed(self) -> bool:
        return self._sealed

    def add_index(self, definition: IndexDefinition) -> IndexDefinition:
        """
        Add an index definition.

        Raises:
            CatalogSealedError: If the catalog has been sealed
            ConflictingTextIndexError: If a text index already exists
            InvalidIndexError: On duplicate names or key patterns, or fields
                the attached registry rejects
            UnknownFieldError: If the attached registry lacks a field
        """
        with self._lock:
            if self._sealed:
                raise CatalogSealedError(
                    f"Index catalog is sealed; cannot add '{definition.name}'"
                )

            if definition.is_text:
                existing = self._text_index()
                if existing is not None:
                    raise ConflictingTextIndexError(existing.name, definition.name)

            if definition.name in self._by_name:
                raise InvalidIndexError(f"Index name already in use: {definition.name}")
            signature = definition.signature()
            for index in self._indexes:
                if index.signature() == signature:
                    raise InvalidIndexError(
                        f"Index '{definition.name}' duplicates the key pattern of '{index.name}'"
                    )

            if self.registry is not None:
                self._check_fields(definition)

            self._indexes.append(definition)
            self._by_name[definition.name] = definition

        logger.debug(f"Added {definition.kind.value} index {definition.name}")
        return definition

    def _check_fields(self, definition: IndexDefinition) -> None:
        descriptors = [self.registry.lookup(f) for f in definition.fields]

        for descriptor in descriptors:
            if not descriptor.indexable:
                raise InvalidIndexError(
                    f"Field '{descriptor.name}' is not indexable (index '{definition.name}')"
                )

        if definition.is_text:
            return

        array_fields = [d.name for d in descriptors if d.is_array]
        if len(array_fields) > 1:
            raise InvalidIndexError(
                f"Index '{definition.name}' covers parallel arrays: {array_fields}"
            )
        if definition.kind is IndexKind.MULTIKEY and not array_fields:
            raise InvalidIndexError(
                f"Multikey index '{definition.name}' requires an array field"
            )

    def _text_index(self) -> IndexDefinition | None:
        for index in self._indexes:
            if index.is_text:
                return index
        return None

    def text_index(self) -> IndexDefinition | None:
        """Return the collection's text index, if declared."""
        return self._text_index()

    def list_indexes(self) -> list[IndexDefinition]:
        """Return all definitions in insertion order."""
        return list(self._indexes)

    def get(self, name: str) -> IndexDefinition | None:
        return self._by_name.get(name)

    def seal(self) -> "IndexCatalog":
        """Freeze the catalog. Sealing twice is a no-op."""
        with self._lock:
            if not self._sealed:
                self._sealed = True
                logger.info(f"Index catalog sealed with {len(self._indexes)} index(es)")
        return self

    def with_indexes(self, definitions: Iterable[IndexDefinition]) -> "IndexCatalog":
        """Return a new sealed catalog holding these indexes plus ``definitions``."""
        catalog = IndexCatalog(self.registry)
        for index in self._indexes:
            catalog.add_index(index)
        for definition in definitions:
            catalog.add_index(definition)
        catalog._sealed = True
        return catalog

    def __iter__(self):
        return iter(list(self._indexes))

    def __len__(self) -> int:
        return len(self._indexes)

    def __repr__(self) -> str:
        state = "sealed" if self._sealed else "open"
        return f"IndexCatalog(indexes={len(self)}, {state})"
