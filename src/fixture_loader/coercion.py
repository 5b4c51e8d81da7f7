"""Coercion of fixture timestamps into the representation of the target column."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional, Union

from dateutil import parser as dtparse
from sqlalchemy import Date, DateTime
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.types import TypeDecorator, TypeEngine

from .errors import ParseError

Temporal = Union[date, datetime]


def column_type(entity_type: type, attribute: str) -> Optional[TypeEngine]:
    """Return the declared SQLAlchemy type of a mapped column attribute."""
    mapper = sa_inspect(entity_type, raiseerr=False)
    if mapper is None or attribute not in mapper.column_attrs:
        return None
    return mapper.column_attrs[attribute].columns[0].type


def storage_type(type_: Optional[TypeEngine]) -> Optional[TypeEngine]:
    """Unwrap ``TypeDecorator`` columns down to the type they store as."""
    while isinstance(type_, TypeDecorator):
        type_ = type_.impl
    return type_


def is_temporal_type(type_: Optional[TypeEngine]) -> bool:
    return isinstance(storage_type(type_), (Date, DateTime))


def as_utc_instant(value: Any) -> datetime:
    """Read ``value`` as an instant; naive values are taken to be UTC."""
    if isinstance(value, str):
        try:
            value = dtparse.parse(value)
        except (ValueError, OverflowError) as exc:
            raise ParseError(f"Cannot parse {value!r} as a timestamp") from exc

    if isinstance(value, datetime):
        instant = value
    elif isinstance(value, date):
        instant = datetime(value.year, value.month, value.day)
    else:
        raise ParseError(f"Cannot interpret {value!r} as a timestamp")

    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def coerce_temporal(value: Any, declared: Optional[TypeEngine]) -> Temporal:
    """Convert a raw timestamp into the value expected by a column of type ``declared``.

    ``Date`` columns receive a ``date``, ``DateTime`` columns without
    timezone support receive the naive UTC wall clock, anything else gets an
    aware UTC ``datetime``.
    """
    instant = as_utc_instant(value)
    declared = storage_type(declared)
    if isinstance(declared, Date):
        return instant.date()
    if isinstance(declared, DateTime) and not declared.timezone:
        return instant.replace(tzinfo=None)
    return instant
