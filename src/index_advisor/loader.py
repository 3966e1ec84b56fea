"""
Session documents.

A session document declares a collection's fields, its existing indexes and
a workload of queries. Documents are YAML, or JSON for `.json` files,
validated against SESSION_SCHEMA before anything is built from them.

Example:
    collection: tickets
    documentCount: 1000000
    fields:
      - {name: tenantId, type: scalar, cardinality: 500}
      - {name: subject, type: scalar, cardinality: 900000, searchable: true}
    indexes:
      - keys: [[tenantId, 1], [status, 1], [createdAt, -1]]
      - text: [subject, description, tags]
    queries:
      - name: ticket_listing
        weight: 10
        equality: {tenantId: tenant_1, status: open}
        range: {createdAt: {$gte: 2024-01-01}}
        sort: [[createdAt, -1]]
        limit: 20
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from .catalog import IndexCatalog, IndexDefinition, IndexKind
from .errors import DocumentValidationError, MalformedQueryError
from .planner.advisor import Workload, WorkloadEntry
from .registry import SchemaRegistry
from .shape import QueryShapeParser

logger = logging.getLogger(__name__)

_DIRECTION = {"enum": [1, -1]}
_OPTIONS = {
    "name": {"type": "string", "minLength": 1},
    "unique": {"type": "boolean"},
    "sparse": {"type": "boolean"},
    "expireAfterSeconds": {"type": "integer", "minimum": 0},
}

SESSION_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["collection", "documentCount", "fields"],
    "additionalProperties": False,
    "properties": {
        "collection": {"type": "string", "minLength": 1},
        "documentCount": {"type": "integer", "minimum": 0},
        "fields": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "type", "cardinality"],
                "additionalProperties": False,
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "type": {"enum": ["scalar", "array", "date"]},
                    "cardinality": {"type": "integer", "minimum": 1},
                    "indexable": {"type": "boolean"},
                    "searchable": {"type": "boolean"},
                },
            },
        },
        "indexes": {
            "type": "array",
            "items": {
                "oneOf": [
                    {
                        "type": "object",
                        "required": ["keys"],
                        "additionalProperties": False,
                        "properties": {
                            "keys": {
                                "type": "array",
                                "minItems": 1,
                                "items": {
                                    "type": "array",
                                    "prefixItems": [{"type": "string"}, _DIRECTION],
                                    "minItems": 2,
                                    "maxItems": 2,
                                },
                            },
                            **_OPTIONS,
                        },
                    },
                    {
                        "type": "object",
                        "required": ["text"],
                        "additionalProperties": False,
                        "properties": {
                            "text": {
                                "type": "array",
                                "minItems": 1,
                                "items": {"type": "string"},
                            },
                            "weights": {
                                "type": "object",
                                "additionalProperties": {"type": "integer", "minimum": 1},
                            },
                            **_OPTIONS,
                        },
                    },
                    {
                        "type": "object",
                        "required": ["multikey"],
                        "additionalProperties": False,
                        "properties": {
                            "multikey": {"type": "string", "minLength": 1},
                            "direction": _DIRECTION,
                            **_OPTIONS,
                        },
                    },
                ]
            },
        },
        "queries": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "weight": {"type": "number", "exclusiveMinimum": 0},
                },
            },
        },
    },
}


@dataclass
class Session:
    """Sealed registry and catalog plus the workload declared with them."""

    registry: SchemaRegistry
    catalog: IndexCatalog
    workload: Workload

    def query(self, name: str) -> WorkloadEntry:
        for entry in self.workload:
            if entry.shape.name == name:
                return entry
        raise KeyError(f"No query named '{name}'")


def load_document(path: str | Path) -> dict[str, Any]:
    """
    Read a session document from ``path``.

    ``.json`` files are read as JSON, anything else as YAML.

    Raises:
        DocumentValidationError: If the file cannot be parsed or does not
            hold a mapping
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        try:
            if path.suffix.lower() == ".json":
                document = json.load(f)
            else:
                document = yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise DocumentValidationError(f"cannot parse document: {e}", path=str(path)) from e
    if not isinstance(document, dict):
        raise DocumentValidationError(f"{path} does not contain a mapping")
    return document


def validate_document(document: dict[str, Any]) -> None:
    """Validate ``document`` against SESSION_SCHEMA."""
    try:
        jsonschema.validate(instance=document, schema=SESSION_SCHEMA)
    except jsonschema.exceptions.ValidationError as e:
        location = "/".join(str(part) for part in e.absolute_path)
        raise DocumentValidationError(e.message, path=location) from e


def _index_from_document(spec: dict[str, Any]) -> IndexDefinition:
    options = {}
    if "unique" in spec:
        options["unique"] = spec["unique"]
    if "sparse" in spec:
        options["sparse"] = spec["sparse"]
    if "expireAfterSeconds" in spec:
        options["expire_after_seconds"] = spec["expireAfterSeconds"]
    name = spec.get("name")

    if "text" in spec:
        return IndexDefinition.text(spec["text"], name=name, weights=spec.get("weights"), **options)
    if "multikey" in spec:
        return IndexDefinition.multikey(
            spec["multikey"], direction=spec.get("direction", 1), name=name, **options
        )
    return IndexDefinition.compound([tuple(key) for key in spec["keys"]], name=name, **options)


def build_session(document: dict[str, Any], strict: bool = False) -> Session:
    """
    Build a sealed Session from a validated document.

    Raises:
        DocumentValidationError: If the document does not match the schema
        InputError: For duplicate fields, conflicting indexes or malformed
            queries
    """
    validate_document(document)

    registry = SchemaRegistry(document["collection"], document["documentCount"])
    for spec in document["fields"]:
        registry.register(
            spec["name"],
            spec["type"],
            spec["cardinality"],
            indexable=spec.get("indexable", True),
            searchable=spec.get("searchable", False),
        )
    registry.seal()

    catalog = IndexCatalog(registry)
    for spec in document.get("indexes", []):
        catalog.add_index(_index_from_document(spec))
    catalog.seal()

    parser = QueryShapeParser(strict=strict)
    entries = []
    for position, spec in enumerate(document.get("queries", []), start=1):
        query = dict(spec)
        weight = query.pop("weight", 1)
        query.setdefault("name", f"query_{position}")
        try:
            shape = parser.parse(query)
        except MalformedQueryError as e:
            raise MalformedQueryError(f"{query['name']}: {e}") from e
        entries.append(WorkloadEntry(shape, weight))

    logger.info(
        f"Loaded session for '{registry.collection}': {len(registry)} field(s), "
        f"{len(catalog)} index(es), {len(entries)} query(ies)"
    )
    return Session(registry=registry, catalog=catalog, workload=Workload(entries))


def load_session(path: str | Path, strict: bool = False) -> Session:
    """Load, validate and build a session from a YAML or JSON file."""
    return build_session(load_document(path), strict=strict)


def dump_index(definition: IndexDefinition) -> dict[str, Any]:
    """Render one index in session-document form."""
    if definition.is_text:
        spec: dict[str, Any] = {"text": list(definition.fields)}
        if definition.weights:
            spec["weights"] = dict(definition.weights)
    elif definition.kind is IndexKind.MULTIKEY:
        spec = {"multikey": definition.keys[0].field, "direction": definition.keys[0].direction}
    else:
        spec = {"keys": [[k.field, k.direction] for k in definition.keys]}

    spec["name"] = definition.name
    if definition.unique:
        spec["unique"] = True
    if definition.sparse:
        spec["sparse"] = True
    if definition.expire_after_seconds is not None:
        spec["expireAfterSeconds"] = definition.expire_after_seconds
    return spec


def dump_catalog(catalog: IndexCatalog) -> list[dict[str, Any]]:
    """Render a catalog as the ``indexes`` section of a session document."""
    return [dump_index(definition) for definition in catalog.list_indexes()]
