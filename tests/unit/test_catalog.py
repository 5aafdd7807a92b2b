"""Tests for OperatorCatalog and CatalogCache."""

import threading
import time

import pytest

from flow_mapper.catalog import (
    CatalogCache,
    OperatorCatalog,
    OperatorDescriptor,
    OperatorKind,
    ReflectionProvider,
    get_catalog_cache,
    set_catalog_cache,
)
from flow_mapper.exceptions import InvalidOperatorName, UnsupportedOperatorKind
from tests.utils.models import Invoice, Owner, Project


class CountingProvider(ReflectionProvider):
    """Reflection provider that counts how often it is asked to reflect."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    def reflect(self, klass, include_instance_methods=False):
        self.calls += 1
        return super().reflect(klass, include_instance_methods=include_instance_methods)


class SlowProvider(CountingProvider):
    """Counting provider that holds each reflection long enough for callers to overlap."""

    def reflect(self, klass, include_instance_methods=False):
        time.sleep(0.1)
        return super().reflect(klass, include_instance_methods=include_instance_methods)


class TestOperatorCatalog:
    """Test cases for OperatorCatalog."""

    def test_search_exact_name(self, project_catalog):
        descriptor = project_catalog.search("title")

        assert descriptor == OperatorDescriptor("title", OperatorKind.ATTRIBUTE)
        assert project_catalog.search("Title") is None
        assert project_catalog.search("missing") is None

    def test_by_kind_in_catalog_order(self, project_catalog):
        assert [d.name for d in project_catalog.by_kind("attribute")] == [
            "id", "title", "value_as_string", "owner_id", "created_at", "updated_at"
        ]
        assert [d.name for d in project_catalog.by_kind(OperatorKind.BELONGS_TO)] == ["owner"]
        assert [d.name for d in project_catalog.by_kind("has_one")] == ["sponsor"]
        assert [d.name for d in project_catalog.by_kind("has_many")] == ["milestones"]
        assert project_catalog.by_kind("method") == []

    def test_by_kind_rejects_unknown_kind(self, project_catalog):
        with pytest.raises(UnsupportedOperatorKind):
            project_catalog.by_kind("column")

    def test_insert_new_operator(self, project_catalog):
        size = len(project_catalog)

        descriptor = project_catalog.insert("owner.budget", "method")

        assert descriptor.kind is OperatorKind.METHOD
        assert project_catalog.search("owner.budget") is descriptor
        assert len(project_catalog) == size + 1
        assert project_catalog.names()[-1] == "owner.budget"

    def test_insert_defaults_to_method(self, project_catalog):
        assert project_catalog.insert("budget_summary").kind is OperatorKind.METHOD

    def test_repeat_insert_returns_existing(self, project_catalog):
        first = project_catalog.insert("budget_summary", "method")
        second = project_catalog.insert("budget_summary", "method")

        assert second is first
        assert project_catalog.names().count("budget_summary") == 1

    def test_insert_of_reflected_operator_returns_it(self, project_catalog):
        found = project_catalog.search("title")

        assert project_catalog.insert("title", "attribute") is found
        assert project_catalog.names().count("title") == 1

    def test_insert_rejects_unsupported_kind(self, project_catalog):
        size = len(project_catalog)

        with pytest.raises(UnsupportedOperatorKind):
            project_catalog.insert("budget_summary", "column")

        assert len(project_catalog) == size

    def test_insert_rejects_invalid_name(self, project_catalog):
        with pytest.raises(InvalidOperatorName):
            project_catalog.insert("Budget Summary", "method")

    def test_conflicting_kind_rejected(self, project_catalog):
        with pytest.raises(UnsupportedOperatorKind) as exc_info:
            project_catalog.insert("title", "method")

        assert "already catalogued as attribute" in str(exc_info.value)
        assert project_catalog.search("title").kind is OperatorKind.ATTRIBUTE

    def test_conflicting_kind_reclassified_in_place(self, project_catalog):
        position = project_catalog.names().index("title")

        descriptor = project_catalog.insert("title", "method", reclassify=True)

        assert descriptor.kind is OperatorKind.METHOD
        assert project_catalog.search("title") is descriptor
        assert project_catalog.names().index("title") == position

    def test_duplicate_descriptors_collapse(self):
        catalog = OperatorCatalog(
            Invoice,
            [
                OperatorDescriptor("number", OperatorKind.ATTRIBUTE),
                OperatorDescriptor("number", OperatorKind.METHOD),
            ],
        )

        assert len(catalog) == 1
        assert catalog.search("number").kind is OperatorKind.ATTRIBUTE

    def test_container_protocol(self, project_catalog):
        assert "title" in project_catalog
        assert "missing" not in project_catalog
        assert [d.name for d in project_catalog] == project_catalog.names()
        assert repr(project_catalog) == f"OperatorCatalog(class=Project, operators={len(project_catalog)})"


class TestCatalogCache:
    """Test cases for CatalogCache."""

    def test_catalog_is_cached_per_class(self):
        provider = CountingProvider()
        cache = CatalogCache(provider)

        first = cache.catalog(Project)
        second = cache.catalog(Project)

        assert first is second
        assert provider.calls == 1
        assert Project in cache
        assert Owner not in cache

    def test_reload_rebuilds_and_swaps(self):
        provider = CountingProvider()
        cache = CatalogCache(provider)

        first = cache.catalog(Project)
        first.insert("budget_summary")
        reloaded = cache.catalog(Project, reload=True)

        assert reloaded is not first
        assert provider.calls == 2
        assert cache.catalog(Project) is reloaded
        assert reloaded.search("budget_summary") is None

    def test_instance_methods_widen_cached_catalog(self):
        cache = CatalogCache()

        plain = cache.catalog(Project)
        plain.insert("budget_summary")
        widened = cache.catalog(Project, include_instance_methods=True)

        assert widened is not plain
        assert widened.include_instance_methods
        assert widened.search("summary").kind is OperatorKind.METHOD
        assert widened.search("budget_summary") is not None
        assert cache.catalog(Project) is widened

    def test_widening_keeps_reclassified_kind(self):
        cache = CatalogCache()

        plain = cache.catalog(Project)
        plain.insert("title", OperatorKind.METHOD, reclassify=True)
        widened = cache.catalog(Project, include_instance_methods=True)

        assert widened.search("title").kind is OperatorKind.METHOD
        assert widened.names().index("title") == plain.names().index("title")
        assert widened.names().count("title") == 1

    def test_reload_keeps_instance_methods(self):
        cache = CatalogCache()

        cache.catalog(Project, include_instance_methods=True)
        reloaded = cache.catalog(Project, reload=True)

        assert reloaded.include_instance_methods
        assert "summary" in reloaded

    def test_invalidate_and_clear(self):
        cache = CatalogCache()
        cache.catalog(Project)
        cache.catalog(Owner)

        assert cache.invalidate(Project) is True
        assert cache.invalidate(Project) is False
        assert len(cache) == 1

        cache.clear()
        assert len(cache) == 0

    def test_concurrent_readers_share_one_catalog(self):
        cache = CatalogCache()
        first = cache.catalog(Project)
        seen = []

        def read():
            seen.append(cache.catalog(Project))

        threads = [threading.Thread(target=read) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(catalog is first for catalog in seen)

    def test_concurrent_first_requests_share_one_catalog(self):
        provider = SlowProvider()
        cache = CatalogCache(provider)
        barrier = threading.Barrier(4)
        seen = []

        def read():
            barrier.wait()
            seen.append(cache.catalog(Project))

        threads = [threading.Thread(target=read) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(seen) == 4
        assert all(catalog is seen[0] for catalog in seen)
        assert provider.calls == 1

        seen[1].insert("budget_summary")
        assert cache.catalog(Project).search("budget_summary") is not None

    def test_shared_cache_accessors(self):
        original = get_catalog_cache()
        replacement = CatalogCache()

        try:
            set_catalog_cache(replacement)
            assert get_catalog_cache() is replacement
        finally:
            set_catalog_cache(original)

        assert get_catalog_cache() is original
