"""
Pytest configuration and fixtures for index advisor tests.
Provides a ticketing-collection schema, index catalogs and query shapes.
"""

import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from index_advisor.catalog import IndexCatalog, IndexDefinition
from index_advisor.registry import SchemaRegistry

DOCUMENT_COUNT = 1_000_000

TICKET_FIELDS = [
    # name, type, cardinality, indexable, searchable
    ("tenantId", "scalar", 500, True, False),
    ("status", "scalar", 4, True, False),
    ("priority", "scalar", 4, True, False),
    ("assigneeId", "scalar", 2_000, True, False),
    ("externalId", "scalar", 1_000_000, True, False),
    ("createdAt", "date", 1_000_000, True, False),
    ("updatedAt", "date", 1_000_000, True, False),
    ("subject", "scalar", 900_000, True, True),
    ("description", "scalar", 1_000_000, True, True),
    ("tags", "array", 5_000, True, True),
    ("watchers", "array", 10_000, True, False),
    ("payload", "scalar", 1_000_000, False, False),
]


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")


def build_registry(document_count: int = DOCUMENT_COUNT) -> SchemaRegistry:
    registry = SchemaRegistry("tickets", document_count)
    for name, field_type, cardinality, indexable, searchable in TICKET_FIELDS:
        registry.register(
            name, field_type, cardinality, indexable=indexable, searchable=searchable
        )
    return registry


@pytest.fixture(scope="session")
def fixtures_dir() -> Path:
    """Directory holding sample session documents."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def open_registry() -> SchemaRegistry:
    """Ticket schema registry, still open for registration."""
    return build_registry()


@pytest.fixture
def registry() -> SchemaRegistry:
    """Sealed ticket schema registry."""
    return build_registry().seal()


@pytest.fixture
def listing_index() -> IndexDefinition:
    """The {tenantId: 1, status: 1, createdAt: -1} ticket listing index."""
    return IndexDefinition.compound([("tenantId", 1), ("status", 1), ("createdAt", -1)])


@pytest.fixture
def text_index() -> IndexDefinition:
    return IndexDefinition.text(["subject", "description", "tags"])


@pytest.fixture
def make_catalog(registry: SchemaRegistry) -> Callable[..., IndexCatalog]:
    """Factory building a sealed catalog from index definitions."""

    def _make(*definitions: IndexDefinition) -> IndexCatalog:
        catalog = IndexCatalog(registry)
        for definition in definitions:
            catalog.add_index(definition)
        return catalog.seal()

    return _make


@pytest.fixture
def catalog(make_catalog, listing_index: IndexDefinition) -> IndexCatalog:
    """Sealed catalog holding only the listing index."""
    return make_catalog(listing_index)


@pytest.fixture
def clean_root_logger():
    """Restore the root logger after a test reconfigures it."""
    root_logger = logging.getLogger()
    saved_handlers = root_logger.handlers[:]
    saved_level = root_logger.level
    yield root_logger
    for handler in root_logger.handlers[:]:
        if handler not in saved_handlers:
            handler.close()
    root_logger.handlers[:] = saved_handlers
    root_logger.setLevel(saved_level)
