"""
Unit tests for session documents.

Tests loading, JSON-schema validation and building sealed sessions.
"""

import copy
import json

import pytest
import yaml

from index_advisor.catalog import IndexDefinition, IndexKind
from index_advisor.errors import (
    ConflictingTextIndexError,
    DocumentValidationError,
    DuplicateFieldError,
    MalformedQueryError,
    MalformedWorkloadError,
    UnknownFieldError,
)
from index_advisor.loader import (
    build_session,
    dump_catalog,
    dump_index,
    load_document,
    load_session,
    validate_document,
)

BASE_DOCUMENT = {
    "collection": "tickets",
    "documentCount": 10_000,
    "fields": [
        {"name": "tenantId", "type": "scalar", "cardinality": 100},
        {"name": "status", "type": "scalar", "cardinality": 4},
        {"name": "createdAt", "type": "date", "cardinality": 10_000},
        {"name": "tags", "type": "array", "cardinality": 300, "searchable": True},
        {"name": "subject", "type": "scalar", "cardinality": 9_000, "searchable": True},
    ],
}


@pytest.fixture
def document():
    return copy.deepcopy(BASE_DOCUMENT)


class TestLoadSession:
    """Test loading the sample session file."""

    def test_load_yaml_fixture(self, fixtures_dir):
        """Test that the sample document builds a sealed session."""
        session = load_session(fixtures_dir / "tickets.yml")

        assert session.registry.collection == "tickets"
        assert session.registry.document_count == 1_000_000
        assert session.registry.sealed is True
        assert session.catalog.sealed is True
        assert [i.name for i in session.catalog] == [
            "tenantId_1_status_1_createdAt_-1",
            "ticket_text",
        ]
        assert len(session.workload) == 4

    def test_query_weights_and_names(self, fixtures_dir):
        """Test that weights and names come from the document."""
        session = load_session(fixtures_dir / "tickets.yml")

        listing = session.query("ticket_listing")

        assert listing.weight == 10
        assert listing.shape.limit == 20

    def test_unknown_query_name(self, fixtures_dir):
        """Test that looking up a missing query raises KeyError."""
        session = load_session(fixtures_dir / "tickets.yml")

        with pytest.raises(KeyError):
            session.query("missing")

    def test_text_weights_loaded(self, fixtures_dir):
        """Test text index weights."""
        session = load_session(fixtures_dir / "tickets.yml")

        assert dict(session.catalog.text_index().weights) == {"subject": 10, "description": 2}

    def test_schema_violation_in_file(self, fixtures_dir):
        """Test that an invalid field type is reported with its location."""
        with pytest.raises(DocumentValidationError) as exc_info:
            load_session(fixtures_dir / "invalid_session.json")

        assert exc_info.value.path == "fields/0/type"

    def test_non_mapping_document(self, tmp_path):
        """Test that a YAML list is not a session document."""
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")

        with pytest.raises(DocumentValidationError, match="mapping"):
            load_document(path)

    def test_tab_indented_json(self, tmp_path, document):
        """Test that JSON files are read as JSON, tabs included."""
        document["queries"] = [{"name": "by_tenant", "equality": {"tenantId": "t1"}}]
        path = tmp_path / "session.json"
        path.write_text(json.dumps(document, indent="\t"))

        session = load_session(path)

        assert session.registry.collection == "tickets"
        assert len(session.registry) == 5
        assert session.query("by_tenant").shape.equality == frozenset({"tenantId"})

    @pytest.mark.parametrize(
        "filename,content",
        [
            ("broken.yml", "collection: [unclosed\n"),
            ("broken.json", '{"collection": "tickets",'),
        ],
    )
    def test_unparseable_document(self, tmp_path, filename, content):
        """Test that syntax errors become DocumentValidationError with the file path."""
        path = tmp_path / filename
        path.write_text(content)

        with pytest.raises(DocumentValidationError, match="cannot parse document") as exc_info:
            load_document(path)

        assert exc_info.value.path == str(path)


class TestValidateDocument:
    """Test JSON-schema validation."""

    def test_minimal_document_is_valid(self, document):
        """Test that fields, collection and count suffice."""
        validate_document(document)

    @pytest.mark.parametrize("missing", ["collection", "documentCount", "fields"])
    def test_required_keys(self, document, missing):
        """Test that required top-level keys are enforced."""
        del document[missing]

        with pytest.raises(DocumentValidationError):
            validate_document(document)

    def test_unknown_top_level_key(self, document):
        """Test that unknown top-level keys are rejected."""
        document["shards"] = 3

        with pytest.raises(DocumentValidationError):
            validate_document(document)

    def test_index_needs_a_known_form(self, document):
        """Test that indexes must be keys, text or multikey entries."""
        document["indexes"] = [{"fields": ["tenantId"]}]

        with pytest.raises(DocumentValidationError, match="indexes/0"):
            validate_document(document)

    def test_invalid_key_direction(self, document):
        """Test that key directions are 1 or -1."""
        document["indexes"] = [{"keys": [["tenantId", 2]]}]

        with pytest.raises(DocumentValidationError):
            validate_document(document)

    def test_non_positive_query_weight(self, document):
        """Test that weights must be positive."""
        document["queries"] = [{"name": "q", "weight": 0}]

        with pytest.raises(DocumentValidationError):
            validate_document(document)


class TestBuildSession:
    """Test building sessions from documents."""

    def test_index_options(self, document):
        """Test unique, sparse and TTL options."""
        document["indexes"] = [
            {"keys": [["tenantId", 1], ["status", 1]], "unique": True, "name": "tenant_status"},
            {"keys": [["createdAt", 1]], "expireAfterSeconds": 86400, "sparse": True},
            {"multikey": "tags", "direction": -1},
        ]

        catalog = build_session(document).catalog

        unique = catalog.get("tenant_status")
        assert unique.unique is True
        ttl = catalog.get("createdAt_1")
        assert ttl.expire_after_seconds == 86400
        assert ttl.sparse is True
        assert catalog.get("tags_-1").kind is IndexKind.MULTIKEY

    def test_default_query_names_and_weight(self, document):
        """Test that unnamed queries get positional names and weight 1."""
        document["queries"] = [{"equality": {"tenantId": 1}}, {"name": "named"}]

        workload = build_session(document).workload

        assert [entry.shape.name for entry in workload] == ["query_1", "named"]
        assert [entry.weight for entry in workload] == [1, 1]

    def test_duplicate_field(self, document):
        """Test that duplicate fields surface as DuplicateFieldError."""
        document["fields"].append({"name": "status", "type": "scalar", "cardinality": 5})

        with pytest.raises(DuplicateFieldError):
            build_session(document)

    def test_second_text_index(self, document):
        """Test that two text indexes conflict."""
        document["indexes"] = [{"text": ["subject"]}, {"text": ["tags"]}]

        with pytest.raises(ConflictingTextIndexError):
            build_session(document)

    def test_index_on_unknown_field(self, document):
        """Test that indexes are checked against the declared fields."""
        document["indexes"] = [{"keys": [["region", 1]]}]

        with pytest.raises(UnknownFieldError):
            build_session(document)

    def test_malformed_query_names_the_query(self, document):
        """Test that query errors carry the query name."""
        document["queries"] = [{"name": "broken", "sort": {"createdAt": 5}}]

        with pytest.raises(MalformedQueryError, match="broken"):
            build_session(document)

    def test_strict_mode_rejects_text_with_sort(self, document):
        """Test strict parsing of text plus field sort."""
        document["queries"] = [{"text": "refund", "sort": {"createdAt": -1}}]

        assert build_session(document).workload.entries[0].shape.unsatisfiable is True
        with pytest.raises(MalformedQueryError):
            build_session(document, strict=True)

    def test_bool_weight_rejected(self, document):
        """Test that a boolean weight is not a frequency."""
        document["queries"] = [{"weight": True}]

        with pytest.raises((DocumentValidationError, MalformedWorkloadError)):
            build_session(document)


class TestDump:
    """Test rendering indexes back into document form."""

    def test_dump_compound(self, listing_index):
        """Test the keys form."""
        assert dump_index(listing_index) == {
            "keys": [["tenantId", 1], ["status", 1], ["createdAt", -1]],
            "name": "tenantId_1_status_1_createdAt_-1",
        }

    def test_dump_text_with_weights(self):
        """Test the text form."""
        definition = IndexDefinition.text(["subject", "tags"], name="search", weights={"subject": 5})

        assert dump_index(definition) == {
            "text": ["subject", "tags"],
            "weights": {"subject": 5},
            "name": "search",
        }

    def test_dumped_catalog_loads_back(self, document):
        """Test that a dumped catalog is a valid indexes section."""
        document["indexes"] = [
            {"keys": [["tenantId", 1], ["createdAt", -1]], "unique": True},
            {"text": ["subject", "tags"], "weights": {"subject": 3}},
            {"multikey": "tags"},
        ]
        catalog = build_session(document).catalog

        reloaded = dict(document, indexes=yaml.safe_load(yaml.safe_dump(dump_catalog(catalog))))

        assert build_session(reloaded).catalog.list_indexes() == catalog.list_indexes()
