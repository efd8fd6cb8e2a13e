"""Click-based CLI interface for the color indexer."""

import json
import sys
from pathlib import Path
from typing import Any

import click

from . import __version__
from .colors import format_all, parse_color, require_color
from .config import PipelineConfig, load_config
from .errors import ColorIndexerError, InvalidColorFormat
from .indexer_logging import setup_logging
from .pipeline import ColorPipeline, DocumentSnapshot


def css_options(f: Any) -> Any:
    """Stylesheets providing custom property declarations."""
    return click.option(
        "--css",
        "css_files",
        multiple=True,
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="CSS file declaring custom properties (repeatable)",
    )(f)


def _build_pipeline(ctx: click.Context, css_files: tuple[Path, ...]) -> ColorPipeline:
    config: PipelineConfig = ctx.obj["config"]
    pipeline = ColorPipeline(config)
    pipeline.reindex((str(path), path.read_text(encoding="utf-8")) for path in css_files)
    return pipeline


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-error output")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Configuration file or directory",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, config_path: Path | None) -> None:
    """Color indexer - detect, resolve and convert CSS colors."""
    if quiet and verbose:
        click.echo("Error: --quiet and --verbose are mutually exclusive", err=True)
        sys.exit(1)

    try:
        config = load_config(config_path)
    except ColorIndexerError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    setup_logging(
        level=config.logging.level,
        quiet=quiet,
        verbose=verbose,
        log_format=config.logging.format,
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@css_options
@click.option("--json", "as_json", is_flag=True, help="Print occurrences as JSON")
@click.pass_context
def scan(ctx: click.Context, file: Path, css_files: tuple[Path, ...], as_json: bool) -> None:
    """Detect colors in FILE."""
    pipeline = _build_pipeline(ctx, css_files)
    snapshot = DocumentSnapshot(
        resource_id=str(file),
        version=1,
        text=file.read_text(encoding="utf-8"),
        path=str(file),
    )
    occurrences = pipeline.collect_colors(snapshot)

    if as_json:
        click.echo(json.dumps([occ.to_dict() for occ in occurrences], indent=2))
        return

    if not occurrences:
        click.echo(f"No colors found in {file}")
        return

    for occ in occurrences:
        click.echo(
            f"{occ.line + 1}:{occ.character + 1}\t{occ.original_text}\t{occ.canonical_string}"
        )
    click.echo(f"Found {len(occurrences)} colors")


@cli.command()
@click.argument("color")
def convert(color: str) -> None:
    """Print COLOR in every notation, original first."""
    try:
        parsed = require_color(color)
    except InvalidColorFormat as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    for fmt, text in format_all(parsed).items():
        click.echo(f"{fmt.value:<10}{text}")


@cli.command()
@click.argument("name")
@css_options
@click.pass_context
def resolve(ctx: click.Context, name: str, css_files: tuple[Path, ...]) -> None:
    """Resolve the custom property NAME across the given stylesheets."""
    if not name.startswith("--"):
        name = f"--{name}"

    pipeline = _build_pipeline(ctx, css_files)
    declarations = pipeline.resolver.declarations_for(name)
    if not declarations:
        click.echo(f"❌ {name} is not declared", err=True)
        sys.exit(1)

    value = pipeline.resolver.resolve_declaration(name)
    click.echo(f"{name}: {value}")
    parsed = parse_color(value or "")
    if parsed is not None:
        click.echo(f"color: {parsed.canonical_string}")

    for declaration in declarations:
        context = declaration.context
        theme = f", {context.theme_hint.value}" if context.theme_hint else ""
        click.echo(
            f"  {declaration.selector} ({context.kind.value}, "
            f"specificity {context.specificity}{theme}) "
            f"{declaration.origin_id}:{declaration.line + 1}  {declaration.raw_value}"
        )


def main() -> None:
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
