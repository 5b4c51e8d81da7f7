from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

DEFAULT_DATABASE_URL = "sqlite:///fixtures.db"
DEFAULT_DB_CONNECT_TIMEOUT = 30.0
DEFAULT_FIXTURE_ROOTS: Tuple[str, ...] = (".",)


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    connect_timeout: float = DEFAULT_DB_CONNECT_TIMEOUT
    create_schema: bool = False


@dataclass(frozen=True)
class FixtureConfig:
    # "package.module:attribute" of the declarative base listing the entities
    models: str
    roots: Tuple[str, ...] = field(default=DEFAULT_FIXTURE_ROOTS)


@dataclass(frozen=True)
class LoaderConfig:
    database: DatabaseConfig
    fixtures: FixtureConfig
