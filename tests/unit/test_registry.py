"""
Unit tests for the schema registry.

Tests field registration, lookup, sealing and input validation.
"""

import threading

import pytest

from index_advisor.errors import CatalogSealedError, DuplicateFieldError, UnknownFieldError
from index_advisor.registry import FieldDescriptor, FieldType, SchemaRegistry


class TestRegistration:
    """Test registering fields."""

    def test_register_returns_descriptor(self):
        """Test that register returns the stored descriptor."""
        registry = SchemaRegistry("tickets", 1000)

        descriptor = registry.register("tenantId", "scalar", 50)

        assert descriptor == FieldDescriptor("tenantId", FieldType.SCALAR, 50)
        assert registry.lookup("tenantId") is descriptor

    def test_register_accepts_enum_type(self):
        """Test registering with a FieldType member."""
        registry = SchemaRegistry("tickets", 1000)

        descriptor = registry.register("tags", FieldType.ARRAY, 200)

        assert descriptor.type is FieldType.ARRAY
        assert descriptor.is_array is True

    def test_defaults_are_indexable_and_not_searchable(self):
        """Test default flags on a new field."""
        registry = SchemaRegistry("tickets", 1000)

        descriptor = registry.register("status", "scalar", 4)

        assert descriptor.indexable is True
        assert descriptor.searchable is False

    def test_duplicate_field_rejected(self, open_registry):
        """Test that registering a field twice raises DuplicateFieldError."""
        with pytest.raises(DuplicateFieldError) as exc_info:
            open_registry.register("tenantId", "scalar", 10)

        assert exc_info.value.field == "tenantId"
        # The original descriptor is untouched
        assert open_registry.lookup("tenantId").cardinality == 500

    @pytest.mark.parametrize("cardinality", [0, -5, 1.5, True])
    def test_invalid_cardinality_rejected(self, cardinality):
        """Test that non-positive or non-integer cardinalities are rejected."""
        registry = SchemaRegistry("tickets", 1000)

        with pytest.raises(ValueError, match="cardinality"):
            registry.register("status", "scalar", cardinality)

    def test_unknown_type_rejected(self):
        """Test that an unknown field type is rejected."""
        registry = SchemaRegistry("tickets", 1000)

        with pytest.raises(ValueError):
            registry.register("id", "uuid", 1000)

    def test_empty_collection_name_rejected(self):
        """Test that a registry needs a collection name."""
        with pytest.raises(ValueError, match="collection"):
            SchemaRegistry("", 10)

    def test_negative_document_count_rejected(self):
        """Test that the document count cannot be negative."""
        with pytest.raises(ValueError, match="document_count"):
            SchemaRegistry("tickets", -1)


class TestLookup:
    """Test reading registered fields."""

    def test_lookup_unknown_field(self, registry):
        """Test that a missing field raises UnknownFieldError."""
        with pytest.raises(UnknownFieldError) as exc_info:
            registry.lookup("missing")

        assert exc_info.value.field == "missing"

    def test_fields_in_registration_order(self, registry):
        """Test that fields() preserves registration order."""
        names = [descriptor.name for descriptor in registry.fields()]

        assert names[:3] == ["tenantId", "status", "priority"]
        assert len(names) == len(registry)

    def test_searchable_fields(self, registry):
        """Test that only searchable, indexable fields are returned."""
        names = [descriptor.name for descriptor in registry.searchable_fields()]

        assert names == ["subject", "description", "tags"]

    def test_searchable_but_not_indexable_excluded(self):
        """Test that a non-indexable field is never offered for text search."""
        registry = SchemaRegistry("notes", 100)
        registry.register("body", "scalar", 100, indexable=False, searchable=True)

        assert registry.searchable_fields() == []

    def test_contains(self, registry):
        """Test membership checks."""
        assert "tenantId" in registry
        assert "missing" not in registry


class TestSealing:
    """Test the seal lifecycle."""

    def test_new_registry_is_open(self):
        """Test that a registry starts open."""
        assert SchemaRegistry("tickets", 10).sealed is False

    def test_seal_returns_registry(self, open_registry):
        """Test that seal() returns the registry for chaining."""
        assert open_registry.seal() is open_registry
        assert open_registry.sealed is True

    def test_seal_is_idempotent(self, open_registry):
        """Test that sealing twice is a no-op."""
        open_registry.seal()
        open_registry.seal()

        assert open_registry.sealed is True

    def test_register_after_seal_rejected(self, registry):
        """Test that a sealed registry rejects new fields."""
        with pytest.raises(CatalogSealedError):
            registry.register("resolvedAt", "date", 1000)

        assert "resolvedAt" not in registry

    def test_concurrent_duplicate_registration(self):
        """Test that only one of many racing registrations succeeds."""
        registry = SchemaRegistry("tickets", 1000)
        outcomes = []

        def register():
            try:
                registry.register("tenantId", "scalar", 10)
                outcomes.append("ok")
            except DuplicateFieldError:
                outcomes.append("duplicate")

        threads = [threading.Thread(target=register) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("duplicate") == 7
