"""CLI main entry point."""

import json
import shlex
import sys

import click

from . import __version__
from .command import CommandRunner
from .config import load_config
from .errors import QuantityMismatchError, UnrecognizedQuantityError
from .lifecycle import configure_environment
from .quantity import QuantityFilter
from .shared.logging import configure_logging

VERBOSITY_LEVELS = {0: None, 1: "info", 2: "debug"}


@click.group()
@click.option("-c", "--config", type=click.Path(), help="Config file path")
@click.option("-v", "--verbose", count=True, help="Increase verbosity")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.version_option(__version__, prog_name="ramen-harness")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: int, json_output: bool) -> None:
    """Test harness for the Ramen stream processor."""
    ctx.ensure_object(dict)
    harness_config = load_config(config)
    level = VERBOSITY_LEVELS.get(min(verbose, 2)) or harness_config.log_level
    configure_logging(
        level=level,
        log_file=harness_config.log_file,
        json_output=harness_config.log_file is not None,
    )
    ctx.obj["config"] = harness_config
    ctx.obj["config_path"] = config
    ctx.obj["json_output"] = json_output


@cli.command()
@click.argument("phrase")
@click.pass_context
def quantity(ctx: click.Context, phrase: str) -> None:
    """Show the range a quantity PHRASE stands for."""
    try:
        qfilter = QuantityFilter(phrase)
    except UnrecognizedQuantityError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(2)

    qrange = qfilter.range
    if ctx.obj["json_output"]:
        data = {
            "description": phrase,
            "category": qrange.category.value,
            "min": qrange.min,
            "max": qrange.max,
        }
        click.echo(json.dumps(data, indent=2))
    else:
        click.echo(f"{phrase!r}: {qrange.category.value}, {qrange}")


@cli.command()
@click.argument("phrase")
@click.argument("count", type=int)
def check(phrase: str, count: int) -> None:
    """Check that COUNT is what PHRASE describes."""
    try:
        QuantityFilter(phrase).check(count)
    except UnrecognizedQuantityError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(2)
    except QuantityMismatchError as e:
        click.echo(f"Mismatch: {e.message}", err=True)
        sys.exit(1)
    click.echo("OK")


@cli.command("exec", context_settings={"ignore_unknown_options": True})
@click.argument("program")
@click.argument("arguments", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def exec_command(ctx: click.Context, program: str, arguments: tuple[str, ...]) -> None:
    """Run PROGRAM with ARGUMENTS in the deterministic test environment."""
    configure_environment(ctx.obj["config"])
    # Quote each argument again: the invoking shell already removed the quotes
    result = CommandRunner().run(program, shlex.join(arguments))

    if ctx.obj["json_output"]:
        click.echo(json.dumps(result.as_dict(), indent=2))
    else:
        click.echo(result.stdout, nl=False)
        click.echo(result.stderr, nl=False, err=True)
    sys.exit(result.exit_code)


@cli.group()
def config() -> None:
    """Harness configuration."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show the effective configuration and where each value comes from."""
    harness_config = ctx.obj["config"]
    values = harness_config.to_dict()

    if ctx.obj["json_output"]:
        data = {
            "values": values,
            "sources": {key: harness_config.get_source(key) for key in values},
        }
        click.echo(json.dumps(data, indent=2))
        return

    click.echo("Ramen Harness Configuration")
    for key, value in values.items():
        click.echo(f"  {key}: {value}  ({harness_config.get_source(key)})")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
