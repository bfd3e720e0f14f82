"""CLI command: explicitness rules — list the active rule table."""

from __future__ import annotations

import click
from rich.console import Console

from explicitness.analyzer.rules import RuleConfig, build_rule_table
from explicitness.report import render_rules

console = Console()


@click.command()
@click.option("--strict", is_flag=True, help="Include standard output rules.")
@click.option("--props", is_flag=True, help="Enable property rules.")
def rules(strict: bool, props: bool) -> None:
    """Show which calls and names are treated as implicit state."""
    render_rules(build_rule_table(RuleConfig(strict=strict, props=props)), console)
