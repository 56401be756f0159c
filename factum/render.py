"""
Plain-data projection of schema and transaction facts.

Facts hold Keywords, TempIds, sets, Decimals and datetimes. ``to_plain`` turns
them into JSON-ready values for CLI output; ``display`` gives short text for
table cells.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from .tempid import TempId
from .values import Keyword


def _sort_key(value: Any) -> tuple[str, str]:
    return (type(value).__name__, str(value))


def to_plain(value: Any) -> Any:
    """Convert fact data to JSON-compatible values."""
    if isinstance(value, Keyword):
        return repr(value)
    if isinstance(value, TempId):
        return {f"#{value.tag}": [to_plain(e) for e in value.elements]}
    if isinstance(value, dict):
        return {_plain_key(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return [to_plain(v) for v in sorted(value, key=_sort_key)]
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _plain_key(key: Any) -> str:
    plain = to_plain(key)
    return plain if isinstance(plain, str) else str(plain)


def display(value: Any) -> str:
    """Short human-readable text for a fact value."""
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Keyword, TempId)):
        return repr(value)
    if isinstance(value, (set, frozenset)):
        return "#{" + " ".join(display(v) for v in sorted(value, key=_sort_key)) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(display(v) for v in value) + "]"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def fact_rows(fact: Any) -> list[tuple[str, str, str, str]]:
    """
    Flatten a transaction fact into (operation, entity, attribute, value) rows.

    Map facts yield one ``db/add`` row per attribute; list facts yield a
    single row.
    """
    if isinstance(fact, dict):
        ref = fact.get("db/id")
        return [
            (":db/add", display(ref), display(k), display(v))
            for k, v in fact.items()
            if k != "db/id"
        ]
    op, ref, *rest = fact
    attribute = display(rest[0]) if rest else "-"
    value = display(rest[1]) if len(rest) > 1 else "-"
    return [(display(op), display(ref), attribute, value)]
