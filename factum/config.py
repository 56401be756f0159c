"""
Load entity declarations from a TOML models file.

Example:

    [defaults]
    partition = "db.part/user"

    [[entities]]
    name = "Mouse"

    [[entities.attributes]]
    name = "tags"
    type = "symbol"
    cardinality = "many"
    default = ["fast"]

Declarations are data; the resulting classes are ordinary Entity subclasses.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .entity import Attribute, Entity
from .errors import ConfigError, FactumError
from .values import Cardinality, coerce_value, resolve_cardinality, resolve_value_type

logger = logging.getLogger(__name__)

_ATTRIBUTE_KEYS = frozenset({"name", "type", "cardinality", "unique", "index", "fulltext", "doc", "default"})


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _optional_str(raw: dict[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{key}' must be a non-empty string")
    return value.strip()


def _optional_bool(raw: dict[str, Any], key: str) -> bool:
    value = raw.get(key, False)
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be true or false, got {value!r}")
    return value


def _parse_attribute(entity_name: str, raw: Any) -> tuple[str, Attribute]:
    if not isinstance(raw, dict):
        raise ConfigError(f"{entity_name}: each attribute must be a table")

    name = str(raw.get("name", "")).strip()
    if not name:
        raise ConfigError(f"{entity_name}: attribute name is required")

    unknown = sorted(set(raw) - _ATTRIBUTE_KEYS)
    if unknown:
        raise ConfigError(f"{entity_name}.{name}: unknown attribute option(s): {', '.join(unknown)}")

    if "type" not in raw:
        raise ConfigError(f"{entity_name}.{name}: attribute type is required")

    try:
        value_type = resolve_value_type(raw["type"])
        index = _optional_bool(raw, "index")
        fulltext = _optional_bool(raw, "fulltext")
        doc = _optional_str(raw, "doc")
        cardinality = resolve_cardinality(raw.get("cardinality", "one"))
        default = raw.get("default")
        if default is not None:
            if cardinality is Cardinality.MANY:
                items = default if isinstance(default, list) else [default]
                default = [coerce_value(value_type, item) for item in items]
            else:
                default = coerce_value(value_type, default)
    except FactumError as e:
        raise ConfigError(f"{entity_name}.{name}: {e}") from e

    attribute = Attribute(
        value_type,
        index=index,
        unique=raw.get("unique"),
        cardinality=cardinality.value,
        doc=doc,
        fulltext=fulltext,
        default=default,
    )
    return name, attribute


def parse_models(data: dict[str, Any], *, module: str | None = None) -> dict[str, type[Entity]]:
    """
    Build entity classes from parsed models data.

    Returns:
        Entity classes keyed by name, in file order
    """
    defaults = _coerce_dict(data.get("defaults"))
    default_partition = _optional_str(defaults, "partition")

    raw_entities = data.get("entities", [])
    if not isinstance(raw_entities, list):
        raise ConfigError("'entities' must be an array of tables")

    models: dict[str, type[Entity]] = {}
    for raw in raw_entities:
        if not isinstance(raw, dict):
            raise ConfigError("each entity must be a table")

        name = str(raw.get("name", "")).strip()
        if not name:
            raise ConfigError("entity name is required")
        if not name.isidentifier():
            raise ConfigError(f"entity name must be an identifier, got {name!r}")
        if name in models:
            raise ConfigError(f"duplicate entity: {name}")

        raw_attributes = raw.get("attributes", [])
        if not isinstance(raw_attributes, list):
            raise ConfigError(f"{name}: 'attributes' must be an array of tables")

        attributes: dict[str, Attribute] = {}
        for raw_attribute in raw_attributes:
            attr_name, attribute = _parse_attribute(name, raw_attribute)
            if attr_name in attributes:
                raise ConfigError(f"{name}: duplicate attribute: {attr_name}")
            attributes[attr_name] = attribute

        try:
            models[name] = Entity.define(
                name,
                attributes,
                prefix=_optional_str(raw, "prefix"),
                partition=_optional_str(raw, "partition") or default_partition,
                module=module or __name__,
            )
        except FactumError as e:
            raise ConfigError(f"{name}: {e}") from e

    return models


def load_models(path: Path) -> dict[str, type[Entity]]:
    """
    Load entity classes from a TOML models file.

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the file is malformed
    """
    import tomllib

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Models file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse models TOML: {e}") from e

    models = parse_models(data)
    logger.info("loaded %d entity type(s) from %s", len(models), path)
    return models
