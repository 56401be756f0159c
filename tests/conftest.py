"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from factum import Attribute, Entity, TempRefCounter, ValueType


@pytest.fixture
def counter() -> TempRefCounter:
    """Fresh temp-ref counter so expected refs do not depend on test order."""
    return TempRefCounter()


@pytest.fixture
def mouse_class(counter: TempRefCounter) -> type[Entity]:
    """The canonical two-attribute entity type."""

    class Mouse(Entity, counter=counter):
        name = Attribute(str)
        tags = Attribute(ValueType.SYMBOL, cardinality="many")

    return Mouse


@pytest.fixture
def models_path(tmp_path: Path) -> Path:
    """A models file declaring Mouse and Cheese."""
    path = tmp_path / "models.toml"
    path.write_text(
        """
[defaults]
partition = "db.part/app"

[[entities]]
name = "Mouse"

[[entities.attributes]]
name = "name"
type = "string"
index = true
unique = "identity"
doc = "Display name"

[[entities.attributes]]
name = "tags"
type = "symbol"
cardinality = "many"
default = ["fast"]

[[entities]]
name = "Cheese"
prefix = "dairy.cheese"
partition = "db.part/user"

[[entities.attributes]]
name = "price"
type = "decimal"
default = "4.50"

[[entities.attributes]]
name = "aged_since"
type = "timestamp"
""",
        encoding="utf-8",
    )
    return path
