"""
Value vocabulary shared by the registry and the transaction builder.

Covers namespaced keywords, the fixed value-type table, the cardinality and
uniqueness enumerations, and the well-known ``db`` keywords that schema and
transaction facts are built from.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from .errors import InvalidOptionError, UnknownValueTypeError, ValueCoercionError


class Keyword(str):
    """
    A namespaced symbol such as ``db/ident`` or ``mouse/tags``.

    Keywords compare and hash like their text, so ``fact["db/id"]`` works on a
    fact keyed by ``Keyword("db/id")``. Serializers tell them apart from plain
    strings by type.
    """

    __slots__ = ()

    def __new__(cls, value: str) -> "Keyword":
        text = str(value)
        if text.startswith(":"):
            text = text[1:]
        if not text:
            raise ValueError("keyword must not be empty")
        return super().__new__(cls, text)

    @property
    def namespace(self) -> str | None:
        ns, sep, _ = self.partition("/")
        return ns if sep else None

    @property
    def name(self) -> str:
        _, sep, name = self.partition("/")
        return name if sep else str(self)

    def __repr__(self) -> str:
        return f":{self}"


def namespace(ns: Any, attribute: Any) -> Keyword:
    """Join a namespace and an attribute name into a keyword (``ns/attribute``)."""
    return Keyword(f"{ns}/{attribute}")


# ============================================================================
# VALUE TYPES
# ============================================================================


class ValueType(str, Enum):
    """Semantic value types an attribute can be declared with."""

    SYMBOL = "symbol"
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    TIMESTAMP = "timestamp"
    URI = "uri"

    @property
    def db_type(self) -> str:
        return VALUE_TYPES[self]


# Semantic type -> store type name (namespaced under db.type)
VALUE_TYPES: dict[ValueType, str] = {
    ValueType.SYMBOL: "keyword",
    ValueType.STRING: "string",
    ValueType.INTEGER: "long",
    ValueType.FLOAT: "float",
    ValueType.DECIMAL: "bigdec",
    ValueType.TIMESTAMP: "instant",
    ValueType.URI: "uri",
}

# Python types accepted as shorthand in declarations
PYTHON_TYPES: dict[type, ValueType] = {
    Keyword: ValueType.SYMBOL,
    str: ValueType.STRING,
    int: ValueType.INTEGER,
    float: ValueType.FLOAT,
    Decimal: ValueType.DECIMAL,
    datetime: ValueType.TIMESTAMP,
}


class Cardinality(str, Enum):
    ONE = "one"
    MANY = "many"


class Unique(str, Enum):
    """
    Uniqueness constraint on an attribute.

    - VALUE: inserting a duplicate value fails
    - IDENTITY: inserting a duplicate value with a temporary id upserts into
      the existing entity
    """

    VALUE = "value"
    IDENTITY = "identity"


# ============================================================================
# WELL-KNOWN KEYWORDS
# ============================================================================

DB_ID = Keyword("db/id")
DB_IDENT = Keyword("db/ident")
DB_VALUE_TYPE = Keyword("db/valueType")
DB_CARDINALITY = Keyword("db/cardinality")
DB_UNIQUE = Keyword("db/unique")
DB_INDEX = Keyword("db/index")
DB_FULLTEXT = Keyword("db/fulltext")
DB_DOC = Keyword("db/doc")
DB_INSTALL_ATTRIBUTE = Keyword("db.install/_attribute")

DB_ADD = Keyword("db/add")
DB_RETRACT = Keyword("db/retract")
DB_RETRACT_ENTITY = Keyword("db.fn/retractEntity")

DB_PART_DB = Keyword("db.part/db")
DB_PART_USER = Keyword("db.part/user")

TYPE_NAMESPACE = "db.type"
CARDINALITY_NAMESPACE = "db.cardinality"
UNIQUE_NAMESPACE = "db.unique"


# ============================================================================
# RESOLUTION AND COERCION
# ============================================================================


def resolve_value_type(tag: Any) -> ValueType:
    """
    Resolve a declared type tag to a ValueType.

    Accepts a ValueType, its string value ("string", "symbol", ...) or one of
    the Python types in PYTHON_TYPES.
    """
    if isinstance(tag, ValueType):
        return tag
    if isinstance(tag, type):
        resolved = PYTHON_TYPES.get(tag)
        if resolved is None:
            raise UnknownValueTypeError(f"No value type mapping for Python type {tag.__name__}")
        return resolved
    if isinstance(tag, str):
        try:
            return ValueType(tag.strip().lower())
        except ValueError:
            pass
    raise UnknownValueTypeError(f"Unknown value type: {tag!r}")


def resolve_cardinality(value: Any) -> Cardinality:
    if value is None:
        return Cardinality.ONE
    try:
        return Cardinality(value)
    except ValueError:
        raise InvalidOptionError(f"cardinality must be 'one' or 'many', got {value!r}") from None


def resolve_unique(value: Any) -> Unique | None:
    if value is None:
        return None
    try:
        return Unique(value)
    except ValueError:
        raise InvalidOptionError(f"unique must be 'value' or 'identity', got {value!r}") from None


def as_value_set(value: Any) -> set:
    """
    Coerce a value into a set for many-cardinality attributes.

    None becomes the empty set, strings and mappings count as a single value,
    any other iterable contributes its items.
    """
    if value is None:
        return set()
    if isinstance(value, (set, frozenset)):
        return set(value)
    if isinstance(value, (str, bytes, Mapping)):
        return {value}
    if isinstance(value, Iterable):
        return set(value)
    return {value}


def coerce_value(value_type: ValueType, raw: Any) -> Any:
    """
    Convert a raw scalar (CLI text, TOML value) into the Python value for a type.

    Values that already have the right type pass through unchanged.
    """
    try:
        if value_type is ValueType.SYMBOL:
            return Keyword(raw)
        if value_type in (ValueType.STRING, ValueType.URI):
            if not isinstance(raw, str):
                raise TypeError(f"expected text, got {type(raw).__name__}")
            return raw
        if value_type is ValueType.INTEGER:
            if isinstance(raw, bool) or isinstance(raw, float):
                raise TypeError(f"expected an integer, got {raw!r}")
            return int(raw)
        if value_type is ValueType.FLOAT:
            if isinstance(raw, bool):
                raise TypeError(f"expected a number, got {raw!r}")
            return float(raw)
        if value_type is ValueType.DECIMAL:
            if isinstance(raw, bool):
                raise TypeError(f"expected a number, got {raw!r}")
            return raw if isinstance(raw, Decimal) else Decimal(str(raw))
        if value_type is ValueType.TIMESTAMP:
            if isinstance(raw, datetime):
                return raw
            return datetime.fromisoformat(str(raw))
    except (TypeError, ValueError, InvalidOperation) as e:
        raise ValueCoercionError(f"Cannot coerce {raw!r} to {value_type.value}: {e}") from e
    raise UnknownValueTypeError(f"Unknown value type: {value_type!r}")
