"""Exceptions raised while loading fixtures."""

from __future__ import annotations

from typing import Any


class FixtureError(Exception):
    """Base exception for fixture loading errors."""


class MissingFixtureError(FixtureError):
    """Raised when a named fixture resource cannot be located."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No such fixture found: {name}")
        self.name = name


class ParseError(FixtureError):
    """Raised when a fixture document is not well-formed."""


class UnknownTagError(FixtureError):
    """Raised when a node carries a tag with no registered entity type."""

    def __init__(self, tag: str) -> None:
        super().__init__(f"No entity type registered for tag {tag!r}")
        self.tag = tag


class PersistenceError(FixtureError):
    """Raised by a store when a single entity cannot be managed."""

    def __init__(self, entity: Any, message: str) -> None:
        super().__init__(message)
        self.entity = entity
