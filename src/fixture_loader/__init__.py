"""Load tagged YAML fixture documents into SQLAlchemy entities."""

from .errors import (FixtureError, MissingFixtureError, ParseError,
                     PersistenceError, UnknownTagError)
from .loader import FixtureLoader
from .persistence import LoadReport, SessionStore, commit_all
from .registry import TypeRegistry, entity_types, tag_for

__all__ = [
    "FixtureError",
    "FixtureLoader",
    "LoadReport",
    "MissingFixtureError",
    "ParseError",
    "PersistenceError",
    "SessionStore",
    "TypeRegistry",
    "UnknownTagError",
    "commit_all",
    "entity_types",
    "tag_for",
]
