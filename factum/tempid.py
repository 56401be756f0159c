"""
Temporary identifiers.

A TempId stands in for an entity that the store has not assigned a permanent
id to yet. The store mints a real id per distinct (partition, ref) pair and
reports it back; a TempId without a ref gets a fresh id for every occurrence.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from .values import DB_PART_USER, Keyword

TEMPID_TAG = "db/id"

DEFAULT_START = -1000


@dataclass(frozen=True)
class TempId:
    """Tagged, partition-scoped placeholder for a not-yet-persisted entity."""

    partition: Keyword = DB_PART_USER
    ref: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.partition, Keyword):
            object.__setattr__(self, "partition", Keyword(self.partition))

    @property
    def tag(self) -> str:
        return TEMPID_TAG

    @property
    def elements(self) -> tuple[Any, ...]:
        if self.ref is None:
            return (self.partition,)
        return (self.partition, self.ref)

    def __repr__(self) -> str:
        inner = " ".join(repr(e) for e in self.elements)
        return f"#{TEMPID_TAG}[{inner}]"


class TempRefCounter:
    """
    Source of temporary reference numbers.

    Hands out strictly decreasing negative integers, starting one below
    ``start``. The decrement is lock-guarded so instances created on several
    threads never share a ref.
    """

    def __init__(self, start: int = DEFAULT_START):
        self._value = start
        self._lock = threading.Lock()

    def next_ref(self) -> int:
        with self._lock:
            self._value -= 1
            return self._value

    @property
    def last(self) -> int:
        """Most recently issued ref (or the start value if none was issued)."""
        return self._value

    def __repr__(self) -> str:
        return f"TempRefCounter(last={self._value})"
