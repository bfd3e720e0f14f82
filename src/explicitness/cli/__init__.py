"""CLI entry point — Click group with global options."""

from __future__ import annotations

import logging

import click

from explicitness import __version__

# Verdicts use 0-3.
USAGE_ERROR_EXIT_CODE = 4


class ExplicitnessGroup(click.Group):
    """Click group whose usage errors exit with USAGE_ERROR_EXIT_CODE."""

    def make_context(self, info_name, args, parent=None, **extra):
        try:
            return super().make_context(info_name, args, parent=parent, **extra)
        except click.UsageError as e:
            e.exit_code = USAGE_ERROR_EXIT_CODE
            raise

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except click.UsageError as e:
            e.exit_code = USAGE_ERROR_EXIT_CODE
            raise


@click.group(cls=ExplicitnessGroup)
@click.version_option(version=__version__, prog_name="explicitness")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a YAML config file (default: ./.explicitness.yaml if present).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """Explicitness — find implicit inputs and outputs in PHP functions."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _register_commands() -> None:
    from explicitness.cli.check import check  # noqa: F811
    from explicitness.cli.rules import rules  # noqa: F811

    main.add_command(check)
    main.add_command(rules)


_register_commands()
