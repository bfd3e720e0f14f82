"""Tests for CLI commands using Click's CliRunner."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from explicitness.cli import main


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path: Path):
    for name in ("EXPLICITNESS_STRICT", "EXPLICITNESS_PROPS", "EXPLICITNESS_JOBS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_main_help():
    runner = CliRunner()
    result = runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "implicit inputs and outputs" in result.output
    assert "check" in result.output
    assert "rules" in result.output


def test_main_version():
    runner = CliRunner()
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_check_help():
    runner = CliRunner()
    result = runner.invoke(main, ["check", "--help"])
    assert result.exit_code == 0
    assert "--strict" in result.output
    assert "--props" in result.output


def test_check_clean_file(explicit_path: Path):
    runner = CliRunner()
    result = runner.invoke(main, ["check", str(explicit_path), "--strict", "--props"])
    assert result.exit_code == 0
    assert "No implicit inputs or outputs found." in result.output


def test_check_json_exit_code(implicit_path: Path):
    runner = CliRunner()
    result = runner.invoke(main, ["check", str(implicit_path), "--format", "json"])
    assert result.exit_code == 3
    document = json.loads(result.stdout)
    assert document["exit_code"] == 3
    assert len(document["violations"]) == 14


def test_check_strict_flag(implicit_path: Path):
    runner = CliRunner()
    result = runner.invoke(main, ["check", str(implicit_path), "--strict", "--format", "json"])
    document = json.loads(result.stdout)
    assert len(document["violations"]) == 15


def test_check_directory_with_exclude(fixtures_dir: Path):
    runner = CliRunner()
    result = runner.invoke(
        main,
        [
            "check",
            str(fixtures_dir),
            "--exclude",
            "implicit.php",
            "--exclude",
            "broken.php",
            "--format",
            "json",
            "--jobs",
            "2",
        ],
    )
    document = json.loads(result.stdout)
    assert {Path(v["file"]).name for v in document["violations"]} == {"ambient.php"}
    assert document["files_analyzed"] == 2
    assert result.exit_code == 3


def test_check_reads_config_file(tmp_path: Path, ambient_path: Path):
    config = tmp_path / "explicitness.yaml"
    config.write_text("props: true\nformat: json\n")
    runner = CliRunner()
    result = runner.invoke(main, ["--config", str(config), "check", str(ambient_path)])
    document = json.loads(result.stdout)
    assert len(document["violations"]) == 15


def test_check_bad_config(tmp_path: Path, explicit_path: Path):
    config = tmp_path / "bad.yaml"
    config.write_text("jobs: 0\n")
    runner = CliRunner()
    result = runner.invoke(main, ["--config", str(config), "check", str(explicit_path)])
    assert result.exit_code == 4
    assert "jobs must be at least 1" in result.output


def test_check_bad_regex(explicit_path: Path):
    runner = CliRunner()
    result = runner.invoke(main, ["check", str(explicit_path), "--exclude-regex", "("])
    assert result.exit_code == 4
    assert "--exclude-regex" in result.output


def test_check_missing_path():
    runner = CliRunner()
    result = runner.invoke(main, ["check", "does-not-exist.php"])
    assert result.exit_code == 4


def test_rules_command():
    runner = CliRunner()
    result = runner.invoke(main, ["rules", "--props"])
    assert result.exit_code == 0
    assert "getenv" in result.output
    assert "Property rules: enabled" in result.output


def test_usage_errors_do_not_collide_with_verdicts(explicit_path: Path):
    runner = CliRunner()
    result = runner.invoke(main, ["check", str(explicit_path), "--jobs", "many"])
    assert result.exit_code == 4
    result = runner.invoke(main, ["check", str(explicit_path), "--no-such-flag"])
    assert result.exit_code == 4
