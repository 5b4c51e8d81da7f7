"""Registry of entity types addressable from fixture tags."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

from .errors import UnknownTagError

LOGGER = logging.getLogger("fixtures.registry")

YAML_TAG_PREFIX = "tag:yaml.org,2002:"


def tag_for(entity_type: type) -> str:
    return "!" + entity_type.__name__ + ":"


def entity_types(models: Any) -> List[type]:
    """Enumerate the mapped classes of a declarative base, or pass an iterable through."""
    registry = getattr(models, "registry", None)
    if registry is not None and hasattr(registry, "mappers"):
        return [mapper.class_ for mapper in registry.mappers]
    return list(models)


class TypeRegistry:
    """Maps ``!Name:`` tags to entity types for the duration of one load."""

    def __init__(self, types: Iterable[type]) -> None:
        self._bindings: Dict[str, type] = {}
        for entity_type in types:
            tag = tag_for(entity_type)
            existing = self._bindings.get(tag)
            if existing is not None and existing is not entity_type:
                LOGGER.warning(
                    "Tag %s already bound to %s.%s, rebinding to %s.%s",
                    tag,
                    existing.__module__,
                    existing.__qualname__,
                    entity_type.__module__,
                    entity_type.__qualname__,
                )
            self._bindings[tag] = entity_type

    @staticmethod
    def is_entity_tag(tag: str) -> bool:
        return tag.startswith("!") and not tag.startswith(YAML_TAG_PREFIX)

    def resolve(self, tag: str) -> type:
        try:
            return self._bindings[tag]
        except KeyError:
            raise UnknownTagError(tag) from None

    def __contains__(self, tag: object) -> bool:
        return tag in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    @property
    def tags(self) -> List[str]:
        return sorted(self._bindings)
