"""
Person Record Normalizer - Main Entry Point

Command-line interface around the normalization pipeline.

Architecture Overview:
┌──────────────────────┐
│   free-text record   │   "LA $ 10-4-1974 $ Nolan $ Rhiannon"
└──────────┬───────────┘
           ▼
┌──────────────────────────────────────────────────────────┐
│                     DISPATCH LAYER                        │
│   GeneralInput = Dollar | Comma | ...  (first match wins) │
└──────────┬───────────────────────────────────────────────┘
           ▼  raw spans {City: "LA", Date: "10-4-1974", ...}
┌──────────────────────────────────────────────────────────┐
│                      FIELD LAYER                          │
│   City: lookup   Date: strptime → strftime   ...          │
└──────────┬───────────────────────────────────────────────┘
           ▼
┌──────────────────────┐
│   canonical string   │   "Rhiannon Los Angeles 10/4/1974"
└──────────────────────┘
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from formats.builtin_formats import default_config
from formats.config_loader import load_config
from formats.registry import NormalizerConfig
from matching.errors import NormalizerError
from pipeline import NormalizationPipeline


DEFAULT_CONFIG_PATH = Path(__file__).parent / "config" / "formats.yaml"


# Configure logging
def setup_logging(verbose: bool = False, log_file: Optional[Path] = None):
    """Configure loguru logging."""
    # Remove default handler
    logger.remove()

    # Console logging
    log_level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=log_level,
        colorize=True
    )

    # File logging
    if log_file:
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}",
            level="DEBUG",
            rotation="10 MB"
        )


def resolve_config(config_path: Optional[Path]) -> NormalizerConfig:
    """Load the given config file, else the default file, else the built-ins."""
    if config_path is not None:
        return load_config(config_path)

    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)

    logger.debug("Default config file not found, using built-in formats")
    return default_config()


def fail(console: Console, error: Exception) -> None:
    """Report an error and exit with status 1."""
    console.print(f"[bold red]Error:[/] {escape(str(error))}")
    raise SystemExit(1)


@click.group()
@click.option(
    '--verbose', '-v',
    is_flag=True,
    help='Enable verbose logging'
)
@click.option(
    '--log-file',
    type=click.Path(path_type=Path),
    default=None,
    help='Write logs to file'
)
@click.option(
    '--config', '-c',
    'config_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help='Path to formats.yaml configuration file'
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, log_file: Optional[Path], config_path: Optional[Path]):
    """
    Person Record Normalizer - canonicalize free-text person records.

    Examples:

        # Normalize one record per line
        person-normalize normalize records.txt

        # Normalize tagged groups from JSON ({"comma": [...], "dollar": [...]})
        person-normalize normalize --groups request.json --json

        # Which format does a record use?
        person-normalize detect "LA $ 10-4-1974 $ Nolan $ Rhiannon"
    """
    setup_logging(verbose=verbose, log_file=log_file)
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path


def _pipeline(ctx: click.Context, console: Console) -> NormalizationPipeline:
    try:
        config = resolve_config(ctx.obj.get('config_path'))
    except NormalizerError as e:
        fail(console, e)
    return NormalizationPipeline(config)


@cli.command('normalize')
@click.argument('input_file', type=click.File('r', encoding='utf-8'), default='-')
@click.option(
    '--groups',
    is_flag=True,
    help='Input is a JSON object of tag -> list of records'
)
@click.option(
    '--json', 'as_json',
    is_flag=True,
    help='Print results as a JSON array'
)
@click.pass_context
def normalize_command(ctx: click.Context, input_file, groups: bool, as_json: bool):
    """Normalize records from INPUT_FILE (or stdin)."""
    console = Console(stderr=True)
    pipeline = _pipeline(ctx, console)

    try:
        if groups:
            try:
                payload = json.load(input_file)
            except json.JSONDecodeError as e:
                fail(console, e)
            if not isinstance(payload, dict):
                fail(console, ValueError("grouped input must be a JSON object"))
            for tag, records in payload.items():
                if not isinstance(records, list) or not all(isinstance(r, str) for r in records):
                    fail(console, ValueError(f"group {tag!r} must be a list of strings"))
            results = pipeline.normalize_batch(payload)
        else:
            records = [line.strip() for line in input_file if line.strip()]
            results = [pipeline.normalize(record) for record in records]
    except NormalizerError as e:
        fail(console, e)

    if as_json:
        click.echo(json.dumps(results, indent=2, ensure_ascii=False))
    else:
        for line in results:
            click.echo(line)

    logger.debug(f"Normalized {len(results)} records")


@cli.command('detect')
@click.argument('text')
@click.pass_context
def detect_command(ctx: click.Context, text: str):
    """Print the name of the format TEXT is written in."""
    console = Console(stderr=True)
    pipeline = _pipeline(ctx, console)

    format_name = pipeline.detect_format(text)
    if format_name is None:
        console.print(
            f"[yellow]No format matches; not a valid {escape(pipeline.dispatcher.name)}[/]"
        )
        raise SystemExit(1)

    click.echo(format_name)


@cli.command('list-formats')
@click.pass_context
def list_formats_command(ctx: click.Context):
    """List the registered formats in priority order."""
    console = Console()
    pipeline = _pipeline(ctx, Console(stderr=True))

    table = Table(title=f"Formats ({pipeline.dispatcher.name})")
    table.add_column("Format", style="cyan")
    table.add_column("Captures")
    table.add_column("Template", style="bold")

    for info in pipeline.list_formats():
        table.add_row(
            info['name'],
            ', '.join(info['captured']),
            escape(info['template']),
        )

    console.print(table)


@cli.command('export-schema')
@click.option(
    '--output', '-o',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Output file path (stdout if not specified)'
)
@click.pass_context
def export_schema_command(ctx: click.Context, output: Optional[Path]):
    """Export rules and formats as JSON."""
    console = Console(stderr=True)
    pipeline = _pipeline(ctx, console)

    schema = pipeline.config.to_dict()

    if output:
        with open(output, 'w', encoding='utf-8') as f:
            json.dump(schema, f, indent=2, ensure_ascii=False)
        console.print(f"[green]✓ Schema exported to: {escape(str(output))}[/]")
    else:
        click.echo(json.dumps(schema, indent=2, ensure_ascii=False))


if __name__ == '__main__':
    cli()
