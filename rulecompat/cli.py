"""CLI entrypoint for rulecompat."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import find_config, load_config


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)],
        force=True,
    )


@click.group()
@click.version_option(__version__, prog_name="rulecompat")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help="Path to rulecompat.toml (defaults to the nearest one above the working directory)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None) -> None:
    """rulecompat - Dual-identity compatibility tooling.

    Inspect migration gate decisions, rewrite legacy references in
    configuration files, and read the migration journal.
    """
    ctx.ensure_object(dict)
    if config_path is None:
        config_path = find_config(Path.cwd())
        if config_path is None:
            raise click.ClickException("Config not found. Pass --config /path/to/rulecompat.toml.")

    try:
        config = load_config(config_path)
    except FileNotFoundError as e:
        raise click.BadParameter(str(e), param_hint="--config / -c")
    except ValueError as e:
        raise click.ClickException(str(e))

    _configure_logging(config.log_level)
    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path.resolve()


@cli.command()
@click.option("--stored", "stored_version", type=str, default=None, help="Stored schema version (omit if none)")
@click.option(
    "--entities/--no-entities",
    "has_persisted_entities",
    default=True,
    help="Whether the world has persisted entities",
)
@click.option("--json", "output_json", is_flag=True, help="Output the decision as JSON")
@click.pass_context
def gate(ctx: click.Context, stored_version: str | None, has_persisted_entities: bool, output_json: bool) -> None:
    """Show what the migration gate decides for a stored version.

    Exits 1 when the stored version is too old to migrate.

    Examples:

        rulecompat gate --stored 2.4.0

        rulecompat gate --no-entities --json
    """
    from .commands.gate_cmd import run_gate

    exit_code = run_gate(
        ctx.obj["config"],
        stored_version=stored_version,
        has_persisted_entities=has_persisted_entities,
        output_json=output_json,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--in-place", "-i", is_flag=True, help="Write the rewritten tree back to FILE")
@click.option("--json", "output_json", is_flag=True, help="Emit JSON even for YAML input")
@click.pass_context
def rewrite(ctx: click.Context, file: Path, in_place: bool, output_json: bool) -> None:
    """Rewrite legacy-alias references in a JSON or YAML file."""
    from .commands.references_cmd import run_rewrite

    exit_code = run_rewrite(ctx.obj["config"], file, in_place=in_place, output_json=output_json)
    sys.exit(exit_code)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def scan(ctx: click.Context, file: Path) -> None:
    """List legacy-alias references in a JSON or YAML file.

    Exits 1 if any are found.
    """
    from .commands.references_cmd import run_scan

    sys.exit(run_scan(ctx.obj["config"], file))


@cli.command()
@click.option("--last", "last_n", type=int, default=None, help="Show only the last N entries")
@click.option(
    "--state-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding migration.jsonl (defaults to .rulecompat next to the config)",
)
@click.pass_context
def journal(ctx: click.Context, last_n: int | None, state_dir: Path | None) -> None:
    """Show migration journal entries, oldest first."""
    from .commands.journal_cmd import run_journal

    if state_dir is None:
        state_dir = ctx.obj["config_path"].parent / ".rulecompat"
    sys.exit(run_journal(state_dir, last_n=last_n))


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
