"""CLI entrypoint for factum."""

import logging
import sys
from pathlib import Path

import click

from . import __version__


def _configure_logging(verbose: bool) -> None:
    from rich.console import Console
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@click.group()
@click.version_option(__version__, prog_name="factum")
@click.option("--verbose", is_flag=True, help="Log declarations, temp ids and tx building to stderr")
def cli(verbose: bool) -> None:
    """factum - Entity models for fact-based datastores.

    Generate schema and transaction facts from entity declarations.
    """
    _configure_logging(verbose)


@cli.command()
@click.argument("models", type=click.Path(exists=False, dir_okay=False, path_type=Path))
@click.option("--entity", "-e", default=None, metavar="NAME", help="Only show this entity type")
@click.option("--json", "output_json", is_flag=True, help="Output schema facts as JSON")
def schema(models: Path, entity: str | None, output_json: bool) -> None:
    """Show schema facts for the entity types in a models file.

    Examples:

        factum schema models.toml

        factum schema models.toml --entity Mouse --json
    """
    from .commands.schema_cmd import run_schema

    sys.exit(run_schema(models, entity=entity, json_output=output_json))


@cli.command()
@click.argument("models", type=click.Path(exists=False, dir_okay=False, path_type=Path))
@click.argument("entity")
@click.option(
    "--set",
    "assignments",
    multiple=True,
    metavar="ATTR=VALUE",
    help="Attribute value (repeatable; comma-separated for cardinality many)",
)
@click.option("--id", "dbid", type=int, default=None, help="Permanent id of an already persisted entity")
@click.option("--json", "output_json", is_flag=True, help="Output transaction facts as JSON")
def tx(models: Path, entity: str, assignments: tuple[str, ...], dbid: int | None, output_json: bool) -> None:
    """Show transaction facts for an entity built from attribute values.

    Examples:

        factum tx models.toml Mouse --set name=Jerry --set tags=fast,sneaky

        factum tx models.toml Mouse --id 17592186045418 --set name=Tom --json
    """
    from .commands.schema_cmd import run_tx

    sys.exit(run_tx(models, entity, list(assignments), dbid=dbid, json_output=output_json))


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
