"""
Attribute registry for entity types.

Each entity type owns one EntityType: an ordered map of attribute name to
AttributeSpec plus the namespace prefix, partition and temp-ref counter its
instances use. The registry is filled once, at class definition time, and is
read-only afterwards.

From the declarations it derives:
- the schema facts that install the attributes in the store
- the namespaced keyword for each attribute
- the positional layout of query rows
"""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Sequence

from .errors import ArityMismatchError, DuplicateAttributeError, InvalidOptionError, UnknownAttributeError
from .tempid import TempId, TempRefCounter
from .values import (
    CARDINALITY_NAMESPACE,
    DB_CARDINALITY,
    DB_DOC,
    DB_FULLTEXT,
    DB_ID,
    DB_IDENT,
    DB_INDEX,
    DB_INSTALL_ATTRIBUTE,
    DB_PART_DB,
    DB_PART_USER,
    DB_UNIQUE,
    DB_VALUE_TYPE,
    TYPE_NAMESPACE,
    UNIQUE_NAMESPACE,
    Cardinality,
    Keyword,
    Unique,
    ValueType,
    as_value_set,
    namespace,
    resolve_cardinality,
    resolve_unique,
    resolve_value_type,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttributeSpec:
    """Declaration of a single attribute."""

    name: str
    value_type: ValueType
    cardinality: Cardinality = Cardinality.ONE
    unique: Unique | None = None
    index: bool = False
    fulltext: bool = False
    doc: str | None = None
    default: Any = None  # set-normalized for many-cardinality

    @property
    def many(self) -> bool:
        return self.cardinality is Cardinality.MANY

    @property
    def has_default(self) -> bool:
        return self.default is not None


# ============================================================================
# PREFIX DERIVATION
# ============================================================================

_ACRONYM_BOUNDARY = re.compile(r"([A-Z\d]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")


def underscore(name: str) -> str:
    """Convert a CamelCase identifier to lower snake case (``FireHouse`` -> ``fire_house``)."""
    text = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    text = _WORD_BOUNDARY.sub(r"\1_\2", text)
    return text.replace("-", "_").lower()


def derive_prefix(type_path: str) -> str:
    """
    Derive a namespace prefix from a dotted type path.

    ``Mouse`` -> ``mouse``, ``Person.User`` -> ``person.user``. Anything up to
    and including a ``<locals>`` marker (classes defined inside functions) is
    dropped.
    """
    parts = type_path.split(".")
    if "<locals>" in parts:
        last = len(parts) - 1 - parts[::-1].index("<locals>")
        parts = parts[last + 1:]
    return ".".join(underscore(p) for p in parts if p)


# ============================================================================
# ENTITY TYPE REGISTRY
# ============================================================================


@dataclass
class EntityType:
    """
    Attribute registry for one entity type.

    Attributes:
        name: Dotted type path the default prefix is derived from
        partition: Partition the type's temporary ids belong to
        counter: Source of temporary reference numbers
        namespace_prefix: Explicit prefix override (None = derive from name)
        attributes: Declared attributes, in declaration order
        defaults: Default values for attributes declared with one
    """

    name: str
    partition: Keyword = DB_PART_USER
    counter: TempRefCounter = field(default_factory=TempRefCounter)
    namespace_prefix: str | None = None
    attributes: dict[str, AttributeSpec] = field(default_factory=dict)
    defaults: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.partition = Keyword(self.partition)

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------

    def declare(
        self,
        name: str,
        value_type: Any,
        *,
        index: bool = False,
        unique: Unique | str | None = None,
        cardinality: Cardinality | str | None = Cardinality.ONE,
        doc: str | None = None,
        fulltext: bool = False,
        default: Any = None,
    ) -> AttributeSpec:
        """
        Register an attribute.

        Args:
            name: Attribute name, unique within this type
            value_type: ValueType, its string value, or a Python type shorthand
            index: Index the attribute for lookup
            unique: "value" (duplicates rejected) or "identity" (duplicates upsert)
            cardinality: "one" (single value) or "many" (set of values)
            doc: Documentation string stored with the attribute
            fulltext: Generate a fulltext index
            default: Value assigned at construction; sets for many-cardinality

        Returns:
            The stored AttributeSpec
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidOptionError(f"{self.name}: attribute name must be a non-empty string")
        if name in self.attributes:
            raise DuplicateAttributeError(self.name, name)

        resolved_cardinality = resolve_cardinality(cardinality)
        if default is not None and resolved_cardinality is Cardinality.MANY:
            default = as_value_set(default)

        spec = AttributeSpec(
            name=name,
            value_type=resolve_value_type(value_type),
            cardinality=resolved_cardinality,
            unique=resolve_unique(unique),
            index=bool(index),
            fulltext=bool(fulltext),
            doc=doc,
            default=default,
        )
        self.attributes[name] = spec
        if spec.has_default:
            self.defaults[name] = spec.default

        logger.debug(
            "declared %s (%s, cardinality=%s)",
            self.namespaced(name),
            spec.value_type.value,
            spec.cardinality.value,
        )
        return spec

    def attribute_names(self) -> list[str]:
        return list(self.attributes)

    def spec(self, name: str) -> AttributeSpec:
        try:
            return self.attributes[name]
        except KeyError:
            raise UnknownAttributeError(self.name, name) from None

    def __contains__(self, name: object) -> bool:
        return name in self.attributes

    def __len__(self) -> int:
        return len(self.attributes)

    # ------------------------------------------------------------------
    # Naming
    # ------------------------------------------------------------------

    @property
    def prefix(self) -> str:
        return self.namespace_prefix or derive_prefix(self.name)

    def set_namespace_prefix(self, prefix: Any) -> None:
        self.namespace_prefix = str(prefix) if prefix is not None else None

    def set_partition(self, partition: Any) -> None:
        self.partition = Keyword(partition)

    def namespaced(self, attribute: str) -> Keyword:
        return namespace(self.prefix, attribute)

    # ------------------------------------------------------------------
    # Derived data
    # ------------------------------------------------------------------

    def schema(self) -> list[dict[Keyword, Any]]:
        """
        Build the schema facts installing every declared attribute.

        Returns:
            One fact per attribute, in declaration order
        """
        facts: list[dict[Keyword, Any]] = []
        for spec in self.attributes.values():
            fact: dict[Keyword, Any] = {
                DB_ID: TempId(DB_PART_DB),
                DB_CARDINALITY: namespace(CARDINALITY_NAMESPACE, spec.cardinality.value),
                DB_INSTALL_ATTRIBUTE: DB_PART_DB,
                DB_IDENT: self.namespaced(spec.name),
                DB_VALUE_TYPE: namespace(TYPE_NAMESPACE, spec.value_type.db_type),
            }
            if spec.unique is not None:
                fact[DB_UNIQUE] = namespace(UNIQUE_NAMESPACE, spec.unique.value)
            if spec.index:
                fact[DB_INDEX] = True
            if spec.fulltext:
                fact[DB_FULLTEXT] = True
            if spec.doc:
                fact[DB_DOC] = spec.doc
            facts.append(fact)
        return facts

    def row_values(self, row: Sequence[Any]) -> tuple[Any, dict[str, Any]]:
        """
        Split a query row into its permanent id and attribute values.

        The row is ``[id, v1, ..., vN]`` with values in declaration order.
        """
        values = list(row)
        if not values or len(values) - 1 != len(self.attributes):
            raise ArityMismatchError(self.name, len(self.attributes), max(len(values) - 1, 0))
        return values[0], dict(zip(self.attributes, values[1:]))

    def initial_values(self) -> dict[str, Any]:
        """Fresh copies of the declared defaults for a new instance."""
        return {name: copy.copy(value) for name, value in self.defaults.items()}

    def inherit(self, name: str, **overrides: Any) -> "EntityType":
        """Registry for a subclass: same partition and counter, copied declarations."""
        params: dict[str, Any] = {
            "name": name,
            "partition": self.partition,
            "counter": self.counter,
            "attributes": dict(self.attributes),
            "defaults": dict(self.defaults),
        }
        params.update({k: v for k, v in overrides.items() if v is not None})
        return EntityType(**params)
