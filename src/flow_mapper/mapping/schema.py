"""
Data flow schema parser.

Turns a template-rendered YAML document into a NodeCollection that maps
the columns of an import source or export target onto operators of a
host class.

Document layout::

    data_flow_schema:
      Project:
        nodes:
          - project:
              source: "title"         # defaults to the node label
              presentation: "Title"   # export header, optional
              operator: title         # operator on Project, optional
              operator_type: method   # kind used if operator must be inserted

          - project_owner_budget:
              heading:
                source: "owner.budget"
              presentation: "Budget"

Without a ``nodes`` key, one node is generated per in-scope operator of
the class, in catalog order.
"""

import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml
from jinja2 import Environment, StrictUndefined, TemplateError
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..catalog.catalog import CatalogCache, OperatorCatalog, get_catalog_cache
from ..catalog.operators import OperatorDescriptor, OperatorKind, is_valid_operator_name
from ..config.manager import ConfigManager, MappingConfig
from ..exceptions import ConfigFormatError, OperatorResolutionWarning, UnsupportedOperatorKind
from ..logging import get_logger
from ..transformation.rules import TransformationRegistry, TransformationRuleSet
from .headers import HeaderDescriptor
from .nodes import NodeCollection, NodeCollectionBuilder
from .resolver import ClassRegistry


logger = get_logger(__name__)


def _scalar_to_str(value: Any) -> Any:
    """YAML turns bare numbers and booleans into non-strings; header text stays text."""
    if isinstance(value, (bool, int, float)):
        return str(value)
    return value


class HeadingSpec(BaseModel):
    """Legacy ``heading`` block of a node."""

    model_config = ConfigDict(extra="ignore")

    source: Optional[str] = None
    destination: Optional[str] = None

    @field_validator("source", "destination", mode="before")
    @classmethod
    def coerce_scalars(cls, v: Any) -> Any:
        return _scalar_to_str(v)


class NodeSpec(BaseModel):
    """Body of a single node entry."""

    model_config = ConfigDict(extra="ignore")

    heading: Optional[HeadingSpec] = None
    source: Optional[str] = None
    presentation: Optional[str] = None
    operator: Optional[str] = None
    operator_type: Optional[str] = None

    @field_validator("source", "presentation", "operator", "operator_type", mode="before")
    @classmethod
    def coerce_scalars(cls, v: Any) -> Any:
        return _scalar_to_str(v)

    def resolve_source(self, label: str) -> str:
        """First present wins: heading.source, then source, then the node label."""
        if self.heading is not None and self.heading.source is not None:
            return self.heading.source
        if self.source is not None:
            return self.source
        return label

    def resolve_presentation(self) -> Optional[str]:
        if self.presentation is not None:
            return self.presentation
        if self.heading is not None:
            return self.heading.destination
        return None


def create_template_environment() -> Environment:
    """Jinja2 environment used to pre-process schema documents."""
    return Environment(
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
    )


def render_template(
    text: str,
    variables: Optional[Dict[str, Any]] = None,
    environment: Optional[Environment] = None,
) -> str:
    """
    Render schema text as a template.

    The process environment is available as ``env``; explicit variables
    take precedence.

    Raises:
        ConfigFormatError: If the template cannot be rendered
    """
    environment = environment or create_template_environment()
    context: Dict[str, Any] = {"env": dict(os.environ)}
    context.update(variables or {})

    try:
        return environment.from_string(text).render(**context)
    except TemplateError as e:
        raise ConfigFormatError(f"Failed to render flow schema template: {e}")


def load_document(text: str) -> Any:
    """
    Parse rendered schema text as YAML.

    Raises:
        ConfigFormatError: If the text is not valid YAML
    """
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigFormatError(f"Bad YAML syntax in flow schema: {e}")


class _StagedOperators:
    """
    Operator insertions made while building, applied to the catalog only
    once the whole document has been processed.
    """

    def __init__(self, catalog: OperatorCatalog, allow_reclassification: bool):
        self.catalog = catalog
        self.allow_reclassification = allow_reclassification
        self._pending: Dict[str, Tuple[OperatorDescriptor, bool]] = {}

    def search(self, name: str) -> Optional[OperatorDescriptor]:
        if name in self._pending:
            return self._pending[name][0]
        return self.catalog.search(name)

    def insert(self, name: str, kind: OperatorKind) -> OperatorDescriptor:
        existing = self.search(name)
        if existing is not None:
            if existing.kind is kind:
                return existing
            if not self.allow_reclassification:
                raise UnsupportedOperatorKind(
                    kind.value,
                    f"Operator '{name}' on {self.catalog.class_name} is already catalogued as "
                    f"{existing.kind.value}, cannot declare it as {kind.value}",
                )

        descriptor = OperatorDescriptor(name, kind)
        self._pending[name] = (descriptor, existing is not None)
        return descriptor

    def commit(self) -> None:
        for name, (descriptor, reclassify) in self._pending.items():
            self.catalog.insert(name, descriptor.kind, reclassify=reclassify)
            logger.info(
                "operator_inserted",
                class_name=self.catalog.class_name,
                operator=name,
                kind=descriptor.kind.value,
                reclassified=reclassify,
            )


class DataFlowSchema:
    """
    Builds node collections from data flow schema documents or classes.

    Collaborators (class registry, catalog cache, transformation registry)
    are passed in explicitly; unspecified ones get defaults, with the
    catalog cache defaulting to the shared process-wide cache.
    """

    NODES_KEY = "nodes"

    def __init__(
        self,
        config: Optional[MappingConfig] = None,
        registry: Optional[ClassRegistry] = None,
        catalog_cache: Optional[CatalogCache] = None,
        transformations: Optional[TransformationRegistry] = None,
        template_environment: Optional[Environment] = None,
        op_types_in_scope: Optional[Iterable[Union[str, OperatorKind]]] = None,
    ):
        self.config = config or MappingConfig()
        self.registry = registry or ClassRegistry()
        self.catalog_cache = catalog_cache if catalog_cache is not None else get_catalog_cache()
        self.transformations = transformations or TransformationRegistry(
            remove_columns=self.config.remove_columns,
            remove_internal_columns=self.config.remove_internal_columns,
        )
        self.template_environment = template_environment or create_template_environment()
        self._op_types_in_scope = (
            list(op_types_in_scope) if op_types_in_scope is not None else None
        )

        self.nodes: Optional[NodeCollection] = None
        self.raw_data: Optional[str] = None
        self.yaml_data: Any = None

    @classmethod
    def from_config_manager(cls, config_manager: ConfigManager, **kwargs: Any) -> "DataFlowSchema":
        return cls(config=config_manager.mapping, **kwargs)

    @property
    def locale_key(self) -> str:
        return self.config.locale_key

    def headers(self) -> List[HeaderDescriptor]:
        return self.nodes.headers.headers() if self.nodes is not None else []

    def sources(self) -> List[str]:
        return self.nodes.sources() if self.nodes is not None else []

    def kinds_in_scope(self) -> List[OperatorKind]:
        """
        Operator kinds used for class-only node generation.

        Raises:
            UnsupportedOperatorKind: If a configured kind is not supported
        """
        if self._op_types_in_scope is None:
            return self.config.kinds_in_scope()
        return [OperatorKind.parse(kind) for kind in self._op_types_in_scope]

    def catalog_for(self, klass: type, reload: bool = False) -> OperatorCatalog:
        return self.catalog_cache.catalog(
            klass,
            reload=reload,
            include_instance_methods=self.config.include_instance_methods,
        )

    # ----- Entry points -----

    def parse(
        self,
        text: str,
        locale_key: Optional[str] = None,
        variables: Optional[Dict[str, Any]] = None,
    ) -> NodeCollection:
        """
        Render, parse and build a node collection from schema text.

        Args:
            text: Schema document, a Jinja2 template producing YAML
            locale_key: Root key of the schema section
            variables: Template variables

        Returns:
            Completed NodeCollection

        Raises:
            ConfigFormatError: If the document is structurally invalid
            ClassResolutionError: If the class name does not resolve
            UnsupportedOperatorKind: If an operator kind is unsupported or conflicts
        """
        rendered = render_template(text, variables, self.template_environment)
        document = load_document(rendered)

        nodes = self._build_from_document(document, locale_key or self.locale_key)

        self.raw_data = rendered
        self.yaml_data = document
        self.nodes = nodes
        return nodes

    def parse_file(
        self,
        file_path: Union[str, Path],
        locale_key: Optional[str] = None,
        variables: Optional[Dict[str, Any]] = None,
    ) -> NodeCollection:
        """Parse a schema document from a UTF-8 file."""
        path = Path(file_path)
        logger.debug("reading_flow_schema", file_path=str(path))
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
        return self.parse(text, locale_key=locale_key, variables=variables)

    def prepare_from_yaml(self, document: Any, locale_key: Optional[str] = None) -> NodeCollection:
        """Build a node collection from an already parsed document."""
        nodes = self._build_from_document(document, locale_key or self.locale_key)

        self.raw_data = None
        self.yaml_data = document
        self.nodes = nodes
        return nodes

    def prepare_from_class(self, klass: type) -> NodeCollection:
        """Build a node collection with one node per in-scope operator of klass."""
        catalog = self.catalog_for(klass)
        nodes = self._build_class_only(catalog, klass.__name__)

        self.raw_data = None
        self.yaml_data = None
        self.nodes = nodes
        return nodes

    # ----- Building -----

    def _build_from_document(self, document: Any, locale_key: str) -> NodeCollection:
        if not isinstance(document, Mapping) or document.get(locale_key) is None:
            raise ConfigFormatError(f"Bad YAML syntax - No key {locale_key} found in flow schema")

        locale_section = document[locale_key]

        if not isinstance(locale_section, Mapping) or len(locale_section) != 1:
            raise ConfigFormatError(
                f"Bad syntax in flow schema - {locale_key} should contain exactly one class name"
            )

        class_name, class_section = next(iter(locale_section.items()))
        klass = self.registry.resolve(class_name)

        if class_section is not None and not isinstance(class_section, Mapping):
            raise ConfigFormatError(
                f"Bad syntax in flow schema - section for {class_name} should be a mapping"
            )

        has_nodes = class_section is not None and self.NODES_KEY in class_section
        yaml_nodes = class_section[self.NODES_KEY] if has_nodes else None

        if has_nodes and (
            not isinstance(yaml_nodes, Sequence) or isinstance(yaml_nodes, (str, bytes))
        ):
            logger.error("invalid_flow_schema", class_name=class_name, reason="nodes_not_sequence")
            raise ConfigFormatError("Bad syntax in flow schema YAML - Nodes should be a sequence")

        # Activated only once the build succeeds
        section_rules = self.transformations.parse_section(class_name, class_section)

        catalog = self.catalog_for(klass)

        if has_nodes:
            nodes = self._build_from_nodes(catalog, class_name, yaml_nodes)
        else:
            nodes = self._build_class_only(catalog, class_name, section_rules)

        self.transformations.activate(section_rules)
        return nodes

    def _build_class_only(
        self,
        catalog: OperatorCatalog,
        class_name: str,
        section_rules: Optional[TransformationRuleSet] = None,
    ) -> NodeCollection:
        kinds = self.kinds_in_scope()
        if section_rules is not None:
            rule_set = self.transformations.with_globals(section_rules)
        else:
            rule_set = self.transformations.for_class(class_name)

        builder = NodeCollectionBuilder(catalog)
        in_scope = [descriptor for descriptor in catalog if descriptor.kind in kinds]

        for descriptor in rule_set.apply(in_scope):
            builder.add_deferred(descriptor.name)

        nodes = builder.build()
        logger.info(
            "schema_parsed",
            class_name=class_name,
            mode="class",
            node_count=len(nodes),
            removed=len(in_scope) - len(nodes),
        )
        return nodes

    def _build_from_nodes(
        self, catalog: OperatorCatalog, class_name: str, yaml_nodes: Sequence[Any]
    ) -> NodeCollection:
        builder = NodeCollectionBuilder(catalog)
        staged = _StagedOperators(catalog, self.config.allow_reclassification)

        logger.debug("reading_flow_schema_nodes", class_name=class_name, count=len(yaml_nodes))

        for i, keyed_node in enumerate(yaml_nodes):
            if not isinstance(keyed_node, Mapping) or len(keyed_node) != 1:
                raise ConfigFormatError(
                    f"Bad syntax in flow schema YAML - Section {keyed_node!r} should be keyed hash"
                )

            label, body = next(iter(keyed_node.items()))
            spec = self._node_spec(label, body)

            source = spec.resolve_source(str(label))
            presentation = spec.resolve_presentation()

            operator = None
            if spec.operator is not None:
                operator = self._resolve_operator(staged, builder, spec, source, i)

            if operator is not None:
                builder.add_resolved(source, operator, presentation=presentation)
            else:
                builder.add_deferred(source, presentation=presentation)

        nodes = builder.build()
        staged.commit()

        logger.info(
            "schema_parsed",
            class_name=class_name,
            mode="nodes",
            node_count=len(nodes),
            resolved=len(nodes.resolved()),
            warnings=len(nodes.warnings),
        )
        return nodes

    def _node_spec(self, label: Any, body: Any) -> NodeSpec:
        if body is None:
            body = {}
        if not isinstance(body, Mapping):
            raise ConfigFormatError(
                f"Bad syntax in flow schema YAML - Node {label} should map to a set of options"
            )

        try:
            return NodeSpec.model_validate(dict(body))
        except ValidationError as e:
            raise ConfigFormatError(f"Bad syntax in flow schema YAML - Node {label}: {e}")

    def _resolve_operator(
        self,
        staged: _StagedOperators,
        builder: NodeCollectionBuilder,
        spec: NodeSpec,
        source: str,
        position: int,
    ) -> Optional[OperatorDescriptor]:
        name = spec.operator
        kind = OperatorKind.parse(spec.operator_type) if spec.operator_type is not None else None

        descriptor = staged.search(name)
        if descriptor is not None and (kind is None or kind is descriptor.kind):
            return descriptor

        if descriptor is None and not is_valid_operator_name(name):
            logger.warning("operator_unresolved", position=position, source=source, operator=name)
            builder.warn(
                OperatorResolutionWarning(
                    position, source, name, "not catalogued and not a valid operator name"
                )
            )
            return None

        return staged.insert(name, kind or OperatorKind.METHOD)
