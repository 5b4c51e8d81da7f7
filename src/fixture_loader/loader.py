"""Load tagged YAML fixture documents into ORM entities and persist them.

A fixture is a YAML document located at ``fixtures/<name>`` beneath one of
the configured roots. Mapping nodes tagged ``!<ClassName>:`` are built into
instances of the matching mapped class; anchors and aliases share instances::

    - !Circle: &family
      code: family
      name: Family

    - !Contact:
      firstName: John
      circles: [*family]

Loading is done inside a transaction owned by the caller::

    with database.transaction() as session:
        FixtureLoader(SessionStore(session), Base, roots=["tests"]).load("demo-data.yml")
"""

from __future__ import annotations

import logging
import os
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import yaml
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError
from yaml.nodes import MappingNode, Node, ScalarNode

from .coercion import coerce_temporal, column_type, is_temporal_type
from .errors import MissingFixtureError, ParseError
from .persistence import LoadReport, commit_all
from .registry import TypeRegistry, entity_types

LOGGER = logging.getLogger("fixtures.loader")

FIXTURES_DIR = "fixtures"
PACKAGE_ROOT_PREFIX = "package:"
TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class IdentityTracker:
    """Call-scoped map from document node identity to constructed entity.

    ``record`` lists every entity once, in the order its construction
    completed.
    """

    def __init__(self) -> None:
        # Node objects are kept alongside the value so their ids stay unique.
        self._objects: Dict[int, Tuple[Node, Any]] = {}
        self.record: List[Any] = []

    def __contains__(self, node: Node) -> bool:
        return id(node) in self._objects

    def __len__(self) -> int:
        return len(self.record)

    def get(self, node: Node) -> Any:
        return self._objects[id(node)][1]

    def remember(self, node: Node, instance: Any) -> None:
        self._objects[id(node)] = (node, instance)

    def append(self, instance: Any) -> None:
        self.record.append(instance)


class FixtureYamlLoader(yaml.SafeLoader):
    """SafeLoader that builds registered entities from tagged mappings."""

    def __init__(self, stream, registry: TypeRegistry, tracker: IdentityTracker) -> None:
        super().__init__(stream)
        self.registry = registry
        self.tracker = tracker

    def construct_object(self, node: Node, deep: bool = False) -> Any:
        if node in self.tracker:
            return self.tracker.get(node)

        if self.registry.is_entity_tag(node.tag):
            entity_type = self.registry.resolve(node.tag)
            if not isinstance(node, MappingNode):
                raise ParseError(
                    f"Tag {node.tag} expects a mapping node{node.start_mark}"
                )
            return self.construct_entity(node, entity_type)

        if isinstance(node, ScalarNode) and node.tag == TIMESTAMP_TAG:
            return coerce_temporal(self.construct_yaml_timestamp(node), None)

        return super().construct_object(node, deep=deep)

    def construct_entity(self, node: MappingNode, entity_type: type) -> Any:
        instance = entity_type()
        self.tracker.remember(node, instance)

        for key_node, value_node in self.entity_pairs(node):
            key = self.construct_object(key_node, deep=True)
            if not isinstance(key, str) or not _has_field(entity_type, key):
                raise ParseError(
                    f"{entity_type.__name__} has no field {key!r}{key_node.start_mark}"
                )
            value = self.construct_field(entity_type, key, value_node)
            try:
                setattr(instance, key, value)
            except (TypeError, ValueError, AttributeError, SQLAlchemyError) as exc:
                raise ParseError(
                    f"Cannot assign {entity_type.__name__}.{key}: {exc}{value_node.start_mark}"
                ) from exc

        self.tracker.append(instance)
        return instance

    def entity_pairs(self, node: MappingNode) -> List[Tuple[Node, Node]]:
        """Key/value pairs of ``node`` with ``<<`` merge keys expanded.

        Merged pairs come first so explicit keys override them. The
        document node itself is left untouched.
        """
        merged = MappingNode(
            node.tag,
            list(node.value),
            node.start_mark,
            node.end_mark,
            flow_style=node.flow_style,
        )
        self.flatten_mapping(merged)
        return merged.value

    def construct_field(self, entity_type: type, key: str, node: Node) -> Any:
        declared = column_type(entity_type, key)
        if isinstance(node, ScalarNode) and node.tag == TIMESTAMP_TAG:
            return coerce_temporal(self.construct_yaml_timestamp(node), declared)

        value = self.construct_object(node, deep=True)
        if isinstance(value, str) and is_temporal_type(declared):
            return coerce_temporal(value, declared)
        return _as_collection(entity_type, key, value)


def _has_field(entity_type: type, key: str) -> bool:
    mapper = sa_inspect(entity_type, raiseerr=False)
    if mapper is not None:
        return key in mapper.attrs
    return hasattr(entity_type, key) and not callable(getattr(entity_type, key))


def _as_collection(entity_type: type, key: str, value: Any) -> Any:
    if value is not None and not isinstance(value, list):
        return value
    mapper = sa_inspect(entity_type, raiseerr=False)
    if mapper is None or key not in mapper.relationships:
        return value
    prop = mapper.relationships[key]
    if not prop.uselist:
        return value
    # an empty "circles:" clears the collection
    items = value if value is not None else []
    if prop.collection_class is set:
        return set(items)
    return list(items)


def resolve_root(root: Any) -> Any:
    """Turn a configured root into something with ``joinpath``."""
    if isinstance(root, str) and root.startswith(PACKAGE_ROOT_PREFIX):
        return resources.files(root[len(PACKAGE_ROOT_PREFIX):])
    if isinstance(root, (str, os.PathLike)):
        return Path(root)
    return root


class FixtureLoader:
    """Loads named fixtures into a store, one document per call."""

    def __init__(
        self,
        store: Any,
        models: Any,
        roots: Optional[Iterable[Any]] = None,
    ) -> None:
        self._store = store
        self._models = models
        self._roots = [resolve_root(root) for root in (roots or [Path.cwd()])]

    @property
    def roots(self) -> List[Any]:
        return list(self._roots)

    def locate(self, name: str) -> Any:
        for root in self._roots:
            candidate = root.joinpath(FIXTURES_DIR)
            for part in name.split("/"):
                candidate = candidate.joinpath(part)
            if candidate.is_file():
                return candidate
        raise MissingFixtureError(name)

    def load(self, name: str) -> LoadReport:
        resource = self.locate(name)
        registry = TypeRegistry(entity_types(self._models))
        tracker = IdentityTracker()

        with resource.open("r", encoding="utf-8") as stream:
            LOGGER.info("Loading fixture %s", name)
            try:
                self._construct(stream, registry, tracker)
            except (yaml.YAMLError, UnicodeDecodeError) as exc:
                raise ParseError(f"Malformed fixture {name}: {exc}") from exc

        LOGGER.debug("Fixture %s constructed %s entities", name, len(tracker))
        report = commit_all(self._store, tracker.record, fixture=name)
        if report.failures:
            LOGGER.warning(
                "Fixture %s: %s of %s entities could not be persisted",
                name,
                report.failed,
                report.total,
            )
        else:
            LOGGER.info("Fixture %s: %s entities persisted", name, report.succeeded)
        return report

    @staticmethod
    def _construct(stream, registry: TypeRegistry, tracker: IdentityTracker) -> None:
        loader = FixtureYamlLoader(stream, registry, tracker)
        try:
            node = loader.get_single_node()
            if node is not None:
                loader.construct_document(node)
        finally:
            loader.dispose()

    def load_all(self, names: Sequence[str]) -> List[LoadReport]:
        return [self.load(name) for name in names]
