"""CLI command: explicitness check <paths> — classify implicit I/O."""

from __future__ import annotations

import logging
import re
import sys
import time

import click
from rich.console import Console

from explicitness.analyzer.engine import Analyzer
from explicitness.config import OUTPUT_FORMATS, ConfigError, ExplicitnessConfig
from explicitness.files import discover
from explicitness.report import render_table, to_json

logger = logging.getLogger(__name__)

console = Console()


@click.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.option("--strict", is_flag=True, help="Also flag writes to standard output.")
@click.option("--props", is_flag=True, help="Also flag object and class property access.")
@click.option(
    "--exclude",
    "-e",
    multiple=True,
    help="Glob of files or directories to skip (repeatable).",
)
@click.option(
    "--exclude-regex",
    multiple=True,
    help="Regular expression matched against file paths to skip (repeatable).",
)
@click.option("--jobs", "-j", type=int, default=None, help="Number of worker threads.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(OUTPUT_FORMATS),
    default=None,
    help="Report format.",
)
@click.pass_context
def check(
    ctx: click.Context,
    paths: tuple[str, ...],
    strict: bool,
    props: bool,
    exclude: tuple[str, ...],
    exclude_regex: tuple[str, ...],
    jobs: int | None,
    output_format: str | None,
) -> None:
    """Analyze PHP files for implicit inputs and outputs.

    Exits with 0 (none), 1 (minor), 2 (serious) or 3 (critical) according
    to the most severe violation found.
    """
    obj = ctx.obj or {}
    try:
        config = ExplicitnessConfig.load(obj.get("config_path"))
        config = config.with_overrides(
            strict=config.strict or strict,
            props=config.props or props,
            exclude=config.exclude + exclude,
            exclude_regex=config.exclude_regex + exclude_regex,
            jobs=jobs,
            output_format=output_format,
        )
    except ConfigError as e:
        raise click.UsageError(str(e)) from e

    try:
        files = discover(paths, config.include, config.exclude, config.exclude_regex)
    except re.error as e:
        raise click.BadParameter(str(e), param_hint="--exclude-regex") from e

    start = time.time()
    analyzer = Analyzer(config.rule_config())
    result = analyzer.analyze_paths(files, jobs=config.jobs)
    logger.debug("Analyzed %d files in %.2fs", len(files), time.time() - start)

    if config.output_format == "json":
        click.echo(to_json(result))
    else:
        base_dir = paths[0] if len(paths) == 1 else ""
        render_table(result, console, base_dir=base_dir)

    if result.exit_code:
        sys.exit(result.exit_code)
