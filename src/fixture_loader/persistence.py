from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import PersistenceError

LOGGER = logging.getLogger("fixtures.persistence")


class SessionStore:
    """Attach fixture entities to an active SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    def manage(self, entity: Any) -> None:
        """Add and flush ``entity`` inside its own savepoint.

        A failure rolls back the savepoint only; the surrounding transaction
        stays usable for the remaining entities.
        """
        try:
            with self._session.begin_nested():
                self._session.add(entity)
                self._session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(entity, f"Could not persist {entity!r}: {exc}") from exc


@dataclass
class LoadReport:
    """Outcome of one fixture load."""

    fixture: str
    managed: List[Any] = field(default_factory=list)
    failures: List[Tuple[Any, BaseException]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.managed) + len(self.failures)

    @property
    def succeeded(self) -> int:
        return len(self.managed)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures


def commit_all(store: Any, record: Sequence[Any], fixture: str = "") -> LoadReport:
    """Manage every recorded entity, last constructed first, never aborting."""
    report = LoadReport(fixture=fixture)
    for entity in reversed(record):
        try:
            store.manage(entity)
        except Exception as exc:
            LOGGER.warning("Skipping %r from %s: %s", entity, fixture or "fixture", exc)
            report.failures.append((entity, exc))
            continue
        report.managed.append(entity)

    LOGGER.debug(
        "Fixture %s: %s of %s entities managed",
        fixture,
        report.succeeded,
        report.total,
    )
    return report
