"""Named counters producing formatted identifiers such as ``EMP_00001_ID``."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Integer, String, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column


class MetaBase(DeclarativeBase):
    pass


class Sequence(MetaBase):
    __tablename__ = "meta_sequence"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True)
    prefix: Mapped[Optional[str]] = mapped_column(String(64))
    suffix: Mapped[Optional[str]] = mapped_column(String(64))
    padding: Mapped[int] = mapped_column(Integer, default=0)
    increment: Mapped[int] = mapped_column(Integer, default=1)
    next_num: Mapped[int] = mapped_column(Integer, default=1)

    def format(self, number: int) -> str:
        return "%s%s%s" % (
            self.prefix or "",
            str(number).zfill(self.padding or 0),
            self.suffix or "",
        )

    def __repr__(self) -> str:
        return f"Sequence(name={self.name!r}, next_num={self.next_num!r})"


def _find(session: Session, name: str) -> Sequence:
    sequence = session.scalars(
        select(Sequence).where(Sequence.name == name).with_for_update()
    ).one_or_none()
    if sequence is None:
        raise LookupError(f"No such sequence: {name}")
    return sequence


def next_value(session: Session, name: str, next_num: Optional[int] = None) -> str:
    """Return the next formatted value of sequence ``name`` and advance it.

    When ``next_num`` is given the counter is reset to it first.
    """
    if next_num is not None:
        set_next(session, name, next_num)
    sequence = _find(session, name)
    number = sequence.next_num or 1
    sequence.next_num = number + (sequence.increment or 1)
    session.flush()
    return sequence.format(number)


def set_next(session: Session, name: str, next_num: int) -> None:
    if next_num < 1:
        raise ValueError("next_num must be positive")
    sequence = _find(session, name)
    sequence.next_num = next_num
    session.flush()
