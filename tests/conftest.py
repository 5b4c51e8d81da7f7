"""Shared fixtures for the fixture loader tests."""

# Standard
from pathlib import Path
from typing import Any, Callable, List, Optional

# Third-Party
import pytest

# First-Party
from fixture_loader.db_connector import DatabaseSession
from fixture_loader.loader import FixtureLoader
from fixture_loader.models import DatabaseConfig
from fixture_loader.sequence import MetaBase

# Local
from tests.models import Base

TESTS_DIR = Path(__file__).parent


class RecordingStore:
    """Store that remembers every ``manage`` call and can be told to fail."""

    def __init__(self, fail_when: Optional[Callable[[Any], bool]] = None) -> None:
        self.calls: List[Any] = []
        self._fail_when = fail_when

    def manage(self, entity: Any) -> None:
        self.calls.append(entity)
        if self._fail_when is not None and self._fail_when(entity):
            raise RuntimeError(f"cannot manage {entity!r}")


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def loader(store: RecordingStore) -> FixtureLoader:
    return FixtureLoader(store, Base, roots=[TESTS_DIR])


@pytest.fixture
def database():
    db = DatabaseSession(DatabaseConfig(url="sqlite://", connect_timeout=1.0))
    db.open()
    db.ensure_schema(Base.metadata)
    db.ensure_schema(MetaBase.metadata)
    yield db
    db.dispose()
