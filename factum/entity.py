"""
Entity base class: instance state and transaction building.

Subclasses declare attributes in the class body (or with ``attribute()``);
each instance tracks current values plus the value every mutated attribute
had before its first change, and turns that before/after state into
transaction facts:

- single-valued attributes are merged into one ``{db/id: ..., ns/attr: value}`` map
- multi-valued attributes become ``[db/retract ...]`` / ``[db/add ...]`` set diffs

An Entity is a data builder. It performs no I/O; persistence layers consume
the facts it produces and echo the permanent id back through ``id``.
"""

from __future__ import annotations

import copy
import logging
import types
from typing import Any, ClassVar, Mapping, Sequence, TypeVar

from .errors import IdAlreadyAssignedError, InvalidOptionError, NotPersistedError
from .registry import AttributeSpec, EntityType
from .tempid import TempId, TempRefCounter
from .validation import Errors
from .values import DB_ADD, DB_ID, DB_RETRACT, DB_RETRACT_ENTITY, Keyword, as_value_set

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Entity")


class Attribute:
    """
    Attribute declaration for an entity class body, and its accessor.

    Reads and writes go through ``Entity.get`` / ``Entity.set`` so that
    cardinality coercion and change tracking apply to plain attribute syntax.
    """

    def __init__(
        self,
        value_type: Any,
        *,
        index: bool = False,
        unique: str | None = None,
        cardinality: str | None = "one",
        doc: str | None = None,
        fulltext: bool = False,
        default: Any = None,
    ):
        self.value_type = value_type
        self.options: dict[str, Any] = {
            "index": index,
            "unique": unique,
            "cardinality": cardinality,
            "doc": doc,
            "fulltext": fulltext,
            "default": default,
        }
        self.name: str | None = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: "Entity | None", owner: type | None = None) -> Any:
        if instance is None:
            return self
        return instance.get(self.name)  # type: ignore[arg-type]

    def __set__(self, instance: "Entity", value: Any) -> None:
        instance.set(self.name, value)  # type: ignore[arg-type]

    def __repr__(self) -> str:
        return f"Attribute({self.name!r}, {self.value_type!r})"


class Entity:
    """
    Base class for declared entity types.

    Class keyword arguments:
        prefix: Namespace prefix override (default: derived from the class name)
        partition: Partition for the type's temporary ids (default: db.part/user)
        counter: TempRefCounter to draw temporary refs from (default: the parent's)
    """

    # Root registry; owns the counter every subclass shares unless overridden.
    __entity_type__: ClassVar[EntityType] = EntityType(name="Entity")

    def __init_subclass__(
        cls,
        *,
        prefix: str | None = None,
        partition: str | None = None,
        counter: TempRefCounter | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init_subclass__(**kwargs)
        entity_type = cls.__entity_type__.inherit(
            cls.__qualname__,
            partition=Keyword(partition) if partition is not None else None,
            counter=counter,
            namespace_prefix=prefix,
        )
        cls.__entity_type__ = entity_type

        for name, member in list(cls.__dict__.items()):
            if isinstance(member, Attribute):
                _check_attribute_name(cls, name)
                entity_type.declare(name, member.value_type, **member.options)

    # ========================================================================
    # CLASS-LEVEL API
    # ========================================================================

    @classmethod
    def entity_type(cls) -> EntityType:
        return cls.__entity_type__

    @classmethod
    def attribute(cls, name: str, value_type: Any, **options: Any) -> AttributeSpec:
        """
        Declare an attribute after the class body.

        Accepts the same options as Attribute (index, unique, cardinality,
        doc, fulltext, default).

        Example:
            Mouse.attribute("age", int, index=True)

        Raises:
            InvalidOptionError: If the class already has subclasses, whose
                registries were copied before this declaration
        """
        _check_attribute_name(cls, name)
        if cls.__subclasses__():
            subclasses = ", ".join(sub.__qualname__ for sub in cls.__subclasses__())
            raise InvalidOptionError(
                f"{cls.__qualname__}: cannot declare '{name}' after subclasses were defined ({subclasses})"
            )
        existing = cls.__dict__.get(name)
        if existing is not None and not isinstance(existing, Attribute):
            raise InvalidOptionError(f"{cls.__qualname__}: '{name}' is already defined on the class")

        spec = cls.__entity_type__.declare(name, value_type, **options)
        accessor = Attribute(value_type, **options)
        accessor.__set_name__(cls, name)
        setattr(cls, name, accessor)
        return spec

    @classmethod
    def attribute_names(cls) -> list[str]:
        return cls.__entity_type__.attribute_names()

    @classmethod
    def prefix(cls) -> str:
        """
        Namespace prefix for the type's attributes.

        Example:
            Mouse.prefix()        # "mouse"
            FireHouse.prefix()    # "fire_house"
            Person.User.prefix()  # "person.user"
        """
        return cls.__entity_type__.prefix

    @classmethod
    def namespace_prefix(cls, prefix: Any) -> None:
        """Override the derived namespace prefix."""
        cls.__entity_type__.set_namespace_prefix(prefix)

    @classmethod
    def partition(cls) -> Keyword:
        return cls.__entity_type__.partition

    @classmethod
    def set_partition(cls, partition: Any) -> None:
        cls.__entity_type__.set_partition(partition)

    @classmethod
    def schema(cls) -> list[dict[Keyword, Any]]:
        """Schema facts installing this type's attributes, in declaration order."""
        return cls.__entity_type__.schema()

    @classmethod
    def from_query(cls: type[E], row: Sequence[Any]) -> E:
        """
        Re-hydrate a query result row into an instance.

        Args:
            row: ``[id, v1, ..., vN]`` with values in declaration order

        Returns:
            A persisted instance with no pending changes
        """
        dbid, values = cls.__entity_type__.row_values(row)
        entity = cls(values)
        entity.id = dbid
        return entity

    @classmethod
    def define(
        cls: type[E],
        name: str,
        attributes: Mapping[str, Attribute] | None = None,
        *,
        prefix: str | None = None,
        partition: str | None = None,
        counter: TempRefCounter | None = None,
        module: str | None = None,
    ) -> type[E]:
        """Build a subclass named ``name`` from a mapping of attribute declarations."""

        def body(ns: dict[str, Any]) -> None:
            ns["__module__"] = module or cls.__module__
            ns.update(attributes or {})

        kwds = {"prefix": prefix, "partition": partition, "counter": counter}
        return types.new_class(name, (cls,), kwds, body)  # type: ignore[return-value]

    # ========================================================================
    # CONSTRUCTION AND ACCESS
    # ========================================================================

    def __init__(self, values: Mapping[str, Any] | None = None, /, **kwargs: Any) -> None:
        """
        Create an instance from the type's defaults overlaid by ``values``.

        Initial values are coerced like any assignment but are not recorded
        as changes.
        """
        self._values: dict[str, Any] = {}
        self._previous: dict[str, Any] = {}
        self._id: Any = None
        self._temp_ref: int | None = None
        self._errors: Errors | None = None

        initial = type(self).__entity_type__.initial_values()
        if values:
            initial.update(values)
        initial.update(kwargs)
        for name, value in initial.items():
            self._assign(name, value)

    def _spec(self, name: str) -> AttributeSpec:
        return type(self).__entity_type__.spec(name)

    def _coerce(self, spec: AttributeSpec, value: Any) -> Any:
        return as_value_set(value) if spec.many else value

    def _assign(self, name: str, value: Any) -> None:
        self._values[name] = self._coerce(self._spec(name), value)

    def get(self, name: str) -> Any:
        self._spec(name)
        return self._values.get(name)

    def set(self, name: str, value: Any) -> None:
        """Assign an attribute, remembering its previous value on the first change."""
        value = self._coerce(self._spec(name), value)
        current = self._values.get(name)
        if value != current and name not in self._previous:
            self._previous[name] = copy.copy(current)
        self._values[name] = value

    @property
    def id(self) -> Any:
        """Permanent id assigned by the store (None until persisted)."""
        return self._id

    @id.setter
    def id(self, value: Any) -> None:
        if self._id is not None and value != self._id:
            raise IdAlreadyAssignedError(
                f"{type(self).__qualname__}: permanent id {self._id!r} cannot be replaced with {value!r}"
            )
        self._id = value

    @property
    def attributes(self) -> dict[str, Any]:
        return {name: self._values.get(name) for name in self.attribute_names()}

    # ========================================================================
    # CHANGE TRACKING
    # ========================================================================

    @property
    def changed(self) -> list[str]:
        """Names of attributes changed since construction (or the last reconcile)."""
        return list(self._previous)

    @property
    def changed_attributes(self) -> dict[str, Any]:
        return dict(self._previous)

    @property
    def changes(self) -> dict[str, tuple[Any, Any]]:
        return {name: (prev, self._values.get(name)) for name, prev in self._previous.items()}

    def attribute_changed(self, name: str) -> bool:
        return name in self._previous

    def changes_applied(self) -> None:
        """Forget recorded changes, typically once a transaction was committed."""
        self._previous.clear()

    def update(self, values: Mapping[str, Any]) -> bool:
        """
        Assign several attributes and mark each of them as changed.

        Calls ``save()`` afterwards when a persistence mix-in provides one.
        """
        for name, value in dict(values).items():
            before = copy.copy(self._values.get(name))
            self.set(name, value)
            self._previous.setdefault(name, before)

        save = getattr(self, "save", None)
        if callable(save):
            save()
        return True

    # ========================================================================
    # IDENTITY
    # ========================================================================

    def temp_ref(self) -> int:
        """Temporary reference number for this instance, minted on first use."""
        if self._temp_ref is None:
            self._temp_ref = type(self).__entity_type__.counter.next_ref()
            logger.debug("minted temp ref %d for %s", self._temp_ref, type(self).__qualname__)
        return self._temp_ref

    def tempid(self) -> TempId:
        return TempId(type(self).partition(), self.temp_ref())

    def entity_ref(self) -> Any:
        """Permanent id if persisted, otherwise this instance's temporary id."""
        return self._id if self._id is not None else self.tempid()

    @property
    def persisted(self) -> bool:
        return self._id is not None

    @property
    def new_record(self) -> bool:
        return not self.persisted

    @property
    def destroyed(self) -> bool:
        return False

    def to_key(self) -> list[Any] | None:
        return [self._id] if self.persisted else None

    # ========================================================================
    # TRANSACTION DATA
    # ========================================================================

    def tx_data(self, *attribute_names: str) -> list[Any]:
        """
        Build transaction facts for this entity.

        Args:
            attribute_names: Attributes to include. Defaults to every changed
                attribute.

        Returns:
            Retraction/addition facts for many-cardinality attributes, followed
            by one merged map for the single-valued ones
        """
        names = list(dict.fromkeys(attribute_names)) or self.changed
        if not names:
            return []

        entity_type = type(self).__entity_type__
        specs = [entity_type.spec(name) for name in names]
        ref = self.entity_ref()

        entity_tx: dict[Keyword, Any] = {}
        txes: list[Any] = []
        for spec in specs:
            if spec.many:
                txes.extend(self._cardinality_many_tx_data(spec.name, ref))
            else:
                entity_tx[entity_type.namespaced(spec.name)] = self._values.get(spec.name)

        if entity_tx:
            txes.append({DB_ID: ref, **entity_tx})

        logger.debug("built %d tx fact(s) for %s %r", len(txes), type(self).__qualname__, ref)
        return txes

    def _cardinality_many_tx_data(self, name: str, ref: Any) -> list[list[Any]]:
        previous = as_value_set(self._previous.get(name))
        current = as_value_set(self._values.get(name))

        additions = current - previous
        retractions = previous - current

        attribute = type(self).__entity_type__.namespaced(name)
        txes: list[list[Any]] = []
        if retractions:
            txes.append([DB_RETRACT, ref, attribute, retractions])
        if additions:
            txes.append([DB_ADD, ref, attribute, additions])
        return txes

    def destroy(self) -> list[Any]:
        """Retract-entity fact for this (persisted) entity."""
        if self._id is None:
            raise NotPersistedError(f"{type(self).__qualname__}: cannot destroy an entity without a permanent id")
        return [DB_RETRACT_ENTITY, self._id]

    # ========================================================================
    # VALIDATION
    # ========================================================================

    @property
    def errors(self) -> Errors:
        if self._errors is None:
            self._errors = Errors()
        return self._errors

    def validate(self) -> None:
        """Hook for subclasses: add messages to ``self.errors``."""

    def is_valid(self) -> bool:
        self.errors.clear()
        self.validate()
        return len(self.errors) == 0

    # ========================================================================
    # COMPARISON
    # ========================================================================

    def __eq__(self, other: object) -> bool:
        """Same stored entity: both persisted with the same permanent id."""
        if not isinstance(other, Entity):
            return NotImplemented
        if self._id is None:
            return False
        return self._id == other._id

    def __hash__(self) -> int:
        # the id is write-once, so the hash never changes once it exists
        if self._id is None:
            raise TypeError(f"unhashable {type(self).__qualname__}: entity has no permanent id")
        return hash(self._id)

    def eql(self, other: object) -> bool:
        """Same stored entity, same type, and equal values for every attribute."""
        if not isinstance(other, Entity) or self != other:
            return False
        if type(self) is not type(other):
            return False
        return all(self.get(name) == other.get(name) for name in self.attribute_names())

    def __repr__(self) -> str:
        parts = [f"id={self._id!r}"] if self._id is not None else []
        parts.extend(f"{name}={value!r}" for name, value in self.attributes.items())
        return f"<{type(self).__name__} {' '.join(parts)}>"


def _check_attribute_name(cls: type, name: str) -> None:
    if not name or name.startswith("_") or hasattr(Entity, name):
        raise InvalidOptionError(f"{cls.__qualname__}: '{name}' cannot be used as an attribute name")
