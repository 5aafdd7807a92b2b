"""
Shared pytest fixtures for the Flow Mapper test suite.

Every test gets its own catalog cache, class registry and transformation
registry so operator insertions never leak between tests.
"""

import pytest

from flow_mapper.catalog import CatalogCache
from flow_mapper.config import MappingConfig
from flow_mapper.mapping import ClassRegistry, DataFlowSchema
from flow_mapper.transformation import TransformationRegistry
from tests.utils.models import Address, Contact, Invoice, Milestone, Owner, Project, Sponsor


@pytest.fixture
def catalog_cache() -> CatalogCache:
    """Fresh catalog cache per test."""
    return CatalogCache()


@pytest.fixture
def class_registry() -> ClassRegistry:
    """Registry with all test host classes registered."""
    registry = ClassRegistry()
    for klass in (Project, Owner, Milestone, Sponsor, Invoice, Contact, Address):
        registry.register(klass)
    return registry


@pytest.fixture
def mapping_config() -> MappingConfig:
    return MappingConfig()


@pytest.fixture
def schema(mapping_config, class_registry, catalog_cache) -> DataFlowSchema:
    """Schema parser wired to the per-test collaborators."""
    return DataFlowSchema(
        config=mapping_config,
        registry=class_registry,
        catalog_cache=catalog_cache,
        transformations=TransformationRegistry(),
    )


@pytest.fixture
def project_catalog(catalog_cache):
    return catalog_cache.catalog(Project)
