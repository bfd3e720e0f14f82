"""Report rendering — rich console table, JSON document, rule listing."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from explicitness.analyzer.models import RunResult, Severity
from explicitness.analyzer.rules import RuleTable

_SEVERITY_COLORS = {
    Severity.NONE: "green",
    Severity.MINOR: "blue",
    Severity.SERIOUS: "yellow",
    Severity.CRITICAL: "red",
}


def render_table(result: RunResult, console: Console, base_dir: str = "") -> None:
    """Print violations in discovery order followed by a summary."""
    for failure in result.parse_failures:
        console.print(f"[yellow]warning:[/yellow] could not analyze {failure}")

    if not result.violations:
        console.print("[green]No implicit inputs or outputs found.[/green]")
        _print_summary(result, console)
        return

    table = Table(title="Implicit inputs and outputs", show_lines=False)
    table.add_column("Severity", style="bold", width=9)
    table.add_column("File", style="cyan")
    table.add_column("Line", justify="right")
    table.add_column("Function")
    table.add_column("Direction")
    table.add_column("Category")
    table.add_column("Description", max_width=60)

    for v in result.violations:
        color = _SEVERITY_COLORS[v.severity]
        table.add_row(
            f"[{color}]{v.severity.label}[/{color}]",
            _shorten_path(v.file, base_dir),
            str(v.line),
            v.function,
            v.direction.value,
            v.category.value,
            v.description,
        )

    console.print(table)
    _print_summary(result, console)


def _print_summary(result: RunResult, console: Console) -> None:
    color = _SEVERITY_COLORS[result.max_severity]
    counts = ", ".join(
        f"{result.counts.get(s, 0)} {s.label}"
        for s in (Severity.CRITICAL, Severity.SERIOUS, Severity.MINOR)
    )
    console.print(
        f"\nAnalyzed {result.files_analyzed} files "
        f"({len(result.parse_failures)} failed)"
    )
    console.print(f"Total violations: {len(result.violations)} ({counts})")
    console.print(f"Verdict: [{color}]{result.max_severity.label}[/{color}]")


def to_json(result: RunResult) -> str:
    """Serialize a run result as a stable JSON document."""
    document = {
        "max_severity": result.max_severity.label,
        "exit_code": result.exit_code,
        "files_analyzed": result.files_analyzed,
        "counts": {s.label: result.counts.get(s, 0) for s in Severity if s is not Severity.NONE},
        "violations": [
            {
                "file": v.file,
                "line": v.line,
                "function": v.function,
                "direction": v.direction.value,
                "category": v.category.value,
                "severity": v.severity.label,
                "description": v.description,
            }
            for v in result.violations
        ],
        "parse_failures": [
            {"file": f.file, "message": f.message} for f in result.parse_failures
        ],
    }
    return json.dumps(document, indent=2)


def render_rules(rules: RuleTable, console: Console) -> None:
    """Print the call rules and ambient names active for a rule table."""
    table = Table(title="Active call rules", show_lines=False)
    table.add_column("Function", style="cyan")
    table.add_column("Category")
    table.add_column("Direction")
    table.add_column("Severity", style="bold")

    for name in sorted(rules.output_primitives):
        rule = rules.lookup_call(name)
        _add_rule_row(table, name, rule)
    for name in sorted(rules.system_calls):
        _add_rule_row(table, name, rules.system_calls[name])

    console.print(table)
    console.print(
        "Superglobals: " + ", ".join(sorted(rules.superglobal_names | {rules.globals_array_name}))
    )
    state = "enabled" if rules.property_rules_enabled else "disabled"
    console.print(f"Property rules: {state}")


def _add_rule_row(table: Table, name: str, rule) -> None:
    color = _SEVERITY_COLORS[rule.category.severity]
    table.add_row(
        name,
        rule.category.value,
        "/".join(d.value for d in rule.directions),
        f"[{color}]{rule.category.severity.label}[/{color}]",
    )


def _shorten_path(file_path: str, base_dir: str) -> str:
    """Shorten file path relative to the analyzed directory."""
    if not base_dir:
        return file_path
    try:
        return Path(file_path).relative_to(base_dir).as_posix()
    except ValueError:
        return file_path
