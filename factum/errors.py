"""
Error taxonomy for factum.

Every failure here is local and synchronous: nothing is retried, nothing is
swallowed. Validity problems reported by ``Entity.validate`` are collected in
``factum.validation.Errors`` instead of being raised.
"""

from __future__ import annotations


class FactumError(Exception):
    """Base class for all factum errors."""


class UnknownValueTypeError(FactumError, ValueError):
    """Raised when an attribute is declared with a type outside the value-type table."""


class ArityMismatchError(FactumError, ValueError):
    """Raised when a query row does not line up with the declared attributes."""

    def __init__(self, type_name: str, expected: int, actual: int):
        self.type_name = type_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{type_name}: query row carries {actual} attribute value(s), expected {expected}"
        )


class DuplicateAttributeError(FactumError, ValueError):
    """Raised when an attribute name is declared twice on one entity type."""

    def __init__(self, type_name: str, name: str):
        self.type_name = type_name
        self.name = name
        super().__init__(f"{type_name}: attribute '{name}' is already declared")


class NotPersistedError(FactumError):
    """Raised when an operation needs a permanent id and the entity has none."""


class UnknownAttributeError(FactumError, LookupError):
    """Raised when reading or writing an attribute that was never declared."""

    def __init__(self, type_name: str, name: str):
        self.type_name = type_name
        self.name = name
        super().__init__(f"{type_name}: unknown attribute '{name}'")


class InvalidOptionError(FactumError, ValueError):
    """Raised for an illegal attribute option (cardinality, unique, name)."""


class ValueCoercionError(FactumError, ValueError):
    """Raised when raw input cannot be converted to an attribute's value type."""


class ConfigError(FactumError, ValueError):
    """Raised for a malformed models file."""


class IdAlreadyAssignedError(FactumError, ValueError):
    """Raised when replacing an entity's permanent id with a different one."""
