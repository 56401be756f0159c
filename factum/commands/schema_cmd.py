"""
CLI commands for schema and transaction output.

Commands:
- factum schema   - Schema facts for the entity types in a models file
- factum tx       - Transaction facts for one instance built from the command line
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from ..config import load_models
from ..entity import Entity
from ..errors import FactumError
from ..render import display, fact_rows, to_plain
from ..values import (
    DB_CARDINALITY,
    DB_DOC,
    DB_FULLTEXT,
    DB_IDENT,
    DB_INDEX,
    DB_UNIQUE,
    DB_VALUE_TYPE,
    coerce_value,
)

console = Console()
err = Console(stderr=True)


def _load(models_path: Path) -> dict[str, type[Entity]] | None:
    try:
        return load_models(models_path)
    except (FileNotFoundError, FactumError) as e:
        err.print(str(e), style="bold red", markup=False)
        return None


# ============================================================================
# factum schema
# ============================================================================


def run_schema(models_path: Path, entity: str | None = None, json_output: bool = False) -> int:
    """
    Print schema facts for every entity type (or one) in a models file.

    Args:
        models_path: Path to the TOML models file
        entity: Only print this entity type
        json_output: Output as JSON

    Returns:
        Exit code (0 = success)
    """
    models = _load(models_path)
    if models is None:
        return 1

    if entity is not None:
        if entity not in models:
            err.print(f"Entity not found: {entity}", style="bold red")
            return 1
        models = {entity: models[entity]}

    schemas = {name: model.schema() for name, model in models.items()}

    if json_output:
        print(json.dumps(to_plain(schemas), indent=2))
        return 0

    for name, facts in schemas.items():
        model = models[name]
        table = Table(title=f"{name} ({model.prefix()}, {model.partition()!r})")
        table.add_column("Ident", style="cyan")
        table.add_column("Type")
        table.add_column("Cardinality")
        table.add_column("Unique")
        table.add_column("Index")
        table.add_column("Fulltext")
        table.add_column("Doc", style="dim")
        for fact in facts:
            table.add_row(
                display(fact[DB_IDENT]),
                display(fact[DB_VALUE_TYPE]),
                display(fact[DB_CARDINALITY]),
                display(fact.get(DB_UNIQUE)),
                "Yes" if fact.get(DB_INDEX) else "No",
                "Yes" if fact.get(DB_FULLTEXT) else "No",
                fact.get(DB_DOC) or "",
            )
        console.print(table)

    total = sum(len(facts) for facts in schemas.values())
    console.print(f"\n[dim]Total: {len(schemas)} entity types, {total} attributes[/dim]")
    return 0


# ============================================================================
# factum tx
# ============================================================================


def parse_assignments(model: type[Entity], assignments: list[str]) -> dict[str, Any]:
    """
    Parse ``attr=value`` pairs into typed attribute values.

    Values for many-cardinality attributes are comma-separated.
    """
    entity_type = model.entity_type()
    values: dict[str, Any] = {}
    for assignment in assignments:
        name, sep, text = assignment.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ValueError(f"Expected attr=value, got {assignment!r}")

        spec = entity_type.spec(name)
        if spec.many:
            items = [item.strip() for item in text.split(",") if item.strip()]
            values[name] = [coerce_value(spec.value_type, item) for item in items]
        else:
            values[name] = coerce_value(spec.value_type, text)
    return values


def run_tx(
    models_path: Path,
    entity: str,
    assignments: list[str],
    dbid: int | None = None,
    json_output: bool = False,
) -> int:
    """
    Print transaction facts for an instance built from ``attr=value`` pairs.

    Every assigned attribute is included in the transaction.

    Args:
        models_path: Path to the TOML models file
        entity: Entity type name
        assignments: ``attr=value`` pairs
        dbid: Permanent id (omit for a new entity)
        json_output: Output as JSON

    Returns:
        Exit code (0 = success)
    """
    models = _load(models_path)
    if models is None:
        return 1

    model = models.get(entity)
    if model is None:
        err.print(f"Entity not found: {entity}", style="bold red")
        return 1

    try:
        values = parse_assignments(model, assignments)
    except (ValueError, LookupError) as e:
        err.print(str(e), style="bold red", markup=False)
        return 1

    instance = model(values)
    if dbid is not None:
        instance.id = dbid
    facts = instance.tx_data(*values)

    if json_output:
        print(json.dumps(to_plain(facts), indent=2))
        return 0

    if not facts:
        console.print("[dim]No attributes assigned; nothing to transact.[/dim]")
        return 0

    table = Table(title=f"{entity} transaction")
    table.add_column("Op", style="cyan")
    table.add_column("Entity")
    table.add_column("Attribute")
    table.add_column("Value")
    for fact in facts:
        for row in fact_rows(fact):
            table.add_row(*row)
    console.print(table)
    return 0
