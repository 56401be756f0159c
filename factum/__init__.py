"""
factum - entity models for fact-based datastores.

A class declares typed attributes; factum derives from that declaration:

- Schema facts installing the attributes in the store
- Transaction facts (additions/retractions) from an instance's changes
- Typed instances re-hydrated from query result rows

Nothing here performs I/O. Facts are plain dicts/lists/sets of scalars,
Keywords and TempIds, ready for a serializer and a store connection.
"""

from .entity import Attribute, Entity
from .errors import (
    ArityMismatchError,
    ConfigError,
    DuplicateAttributeError,
    FactumError,
    IdAlreadyAssignedError,
    InvalidOptionError,
    NotPersistedError,
    UnknownAttributeError,
    UnknownValueTypeError,
    ValueCoercionError,
)
from .registry import AttributeSpec, EntityType
from .tempid import TempId, TempRefCounter
from .validation import Errors
from .values import Cardinality, Keyword, Unique, ValueType, namespace

__version__ = "0.1.0"

__all__ = [
    # Declarations
    "Attribute",
    "Entity",
    "AttributeSpec",
    "EntityType",
    # Values
    "Cardinality",
    "Keyword",
    "Unique",
    "ValueType",
    "namespace",
    # Identity
    "TempId",
    "TempRefCounter",
    # Validation
    "Errors",
    # Errors
    "FactumError",
    "ArityMismatchError",
    "ConfigError",
    "DuplicateAttributeError",
    "IdAlreadyAssignedError",
    "InvalidOptionError",
    "NotPersistedError",
    "UnknownAttributeError",
    "UnknownValueTypeError",
    "ValueCoercionError",
]
