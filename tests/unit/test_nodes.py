"""Tests for headers, method bindings and node collections."""

import pytest

from flow_mapper.catalog import OperatorDescriptor, OperatorKind
from flow_mapper.exceptions import FlowMapperError, OperatorResolutionWarning
from flow_mapper.mapping import (
    DeferredBinding,
    HeaderDescriptor,
    HeaderRegistry,
    MethodBinding,
    NodeCollection,
    NodeCollectionBuilder,
    NodeContext,
    ResolvedBinding,
)


class TestHeaderRegistry:
    """Test cases for HeaderRegistry."""

    def test_positions_follow_append_order(self):
        registry = HeaderRegistry()

        first = registry.add("title", presentation="Title")
        second = registry.add("owner.budget")

        assert first == HeaderDescriptor("title", "Title", 0)
        assert second == HeaderDescriptor("owner.budget", None, 1)
        assert [h.position for h in registry] == [0, 1]

    def test_sources_and_labels(self):
        registry = HeaderRegistry()
        registry.add("title", presentation="Title")
        registry.add("owner.budget")

        assert registry.sources() == ["title", "owner.budget"]
        assert registry.labels() == ["Title", "owner.budget"]
        assert registry[1].label == "owner.budget"

    def test_empty_presentation_is_kept(self):
        header = HeaderRegistry().add("title", presentation="")

        assert header.label == ""

    def test_freeze(self):
        registry = HeaderRegistry()
        registry.add("title")
        registry.freeze()

        with pytest.raises(RuntimeError):
            registry.add("value")
        assert len(registry) == 1


class TestMethodBinding:
    """Test cases for resolved and deferred bindings."""

    def test_resolved_binding(self):
        operator = OperatorDescriptor("title", OperatorKind.ATTRIBUTE)
        binding = ResolvedBinding(0, "title", operator)

        assert binding.is_resolved
        assert binding.operator is operator

    def test_resolved_binding_requires_operator(self):
        with pytest.raises(TypeError):
            ResolvedBinding(0, "title", None)

    def test_deferred_binding(self):
        binding = DeferredBinding(3, "owner.budget")

        assert not binding.is_resolved
        assert binding.operator is None
        assert binding.position == 3
        assert binding.source == "owner.budget"

    def test_deferred_binding_resolves_to_new_binding(self):
        deferred = DeferredBinding(1, "Title")
        operator = OperatorDescriptor("title", OperatorKind.ATTRIBUTE)

        resolved = deferred.resolve(operator)

        assert resolved == ResolvedBinding(1, "Title", operator)
        assert not deferred.is_resolved

    def test_base_binding_cannot_be_created(self):
        with pytest.raises(TypeError):
            MethodBinding(0, "title")

    def test_bindings_are_immutable(self):
        binding = DeferredBinding(0, "title")

        with pytest.raises(AttributeError):
            binding.position = 2


class TestNodeCollectionBuilder:
    """Test cases for NodeCollectionBuilder and NodeCollection."""

    def test_build_pairs_nodes_and_headers(self, project_catalog):
        builder = NodeCollectionBuilder(project_catalog)
        builder.add_resolved("title", project_catalog.search("title"), presentation="Title")
        builder.add_deferred("owner.budget", presentation="Budget")

        collection = builder.build()

        assert len(collection) == len(collection.headers) == 2
        assert [node.index for node in collection] == [0, 1]
        assert [h.position for h in collection.headers] == [0, 1]
        assert collection[0].header == HeaderDescriptor("title", "Title", 0)
        assert isinstance(collection[0], NodeContext)
        assert collection.klass.__name__ == "Project"

    def test_resolved_and_deferred_views(self, project_catalog):
        builder = NodeCollectionBuilder(project_catalog)
        builder.add_deferred("value")
        builder.add_resolved("title", project_catalog.search("title"))

        collection = builder.build()

        assert [node.index for node in collection.resolved()] == [1]
        assert [node.index for node in collection.deferred()] == [0]
        assert collection[1].operator.name == "title"
        assert [b.is_resolved for b in collection.bindings()] == [False, True]

    def test_collection_headers_are_read_only(self, project_catalog):
        builder = NodeCollectionBuilder(project_catalog)
        builder.add_deferred("title")
        collection = builder.build()

        with pytest.raises(RuntimeError):
            collection.headers.add("extra")
        assert len(collection) == len(collection.headers) == 1

    def test_build_only_once(self, project_catalog):
        builder = NodeCollectionBuilder(project_catalog)
        builder.build()

        with pytest.raises(FlowMapperError):
            builder.build()
        with pytest.raises(FlowMapperError):
            builder.add_deferred("title")

    def test_empty_collection(self, project_catalog):
        collection = NodeCollectionBuilder(project_catalog).build()

        assert len(collection) == 0
        assert collection.sources() == []

    def test_warnings_are_carried(self, project_catalog):
        builder = NodeCollectionBuilder(project_catalog)
        builder.add_deferred("Budget Total")
        builder.warn(OperatorResolutionWarning(0, "Budget Total", "budget total", "invalid"))

        collection = builder.build()

        assert len(collection.warnings) == 1
        assert collection.warnings[0].operator == "budget total"
        assert "warnings=1" in repr(collection)

    def test_collection_rejects_headers_out_of_step(self, project_catalog):
        headers = HeaderRegistry()
        headers.add("title")
        headers.add("owner.budget")
        node = NodeContext(0, DeferredBinding(0, "title"), headers[0])

        with pytest.raises(FlowMapperError):
            NodeCollection(project_catalog, headers, [node])
        assert not headers.frozen

    def test_collection_rejects_wrong_index(self, project_catalog):
        headers = HeaderRegistry()
        header = headers.add("title")
        node = NodeContext(1, DeferredBinding(1, "title"), header)

        with pytest.raises(FlowMapperError):
            NodeCollection(project_catalog, headers, [node])

    def test_collection_accepts_consistent_nodes(self, project_catalog):
        headers = HeaderRegistry()
        header = headers.add("title", presentation="Title")
        node = NodeContext(0, DeferredBinding(0, "title"), header)

        collection = NodeCollection(project_catalog, headers, [node])

        assert collection.labels() == ["Title"]
        assert headers.frozen
