"""Tests for configuration loading."""

from pathlib import Path

import pytest

from explicitness.analyzer.rules import RuleConfig
from explicitness.config import ConfigError, ExplicitnessConfig, load_config_from_string


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path: Path):
    for name in ("EXPLICITNESS_STRICT", "EXPLICITNESS_PROPS", "EXPLICITNESS_JOBS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults():
    config = ExplicitnessConfig.load()
    assert config.strict is False
    assert config.props is False
    assert config.include == ("*.php",)
    assert config.jobs == 1
    assert config.output_format == "table"
    assert config.rule_config() == RuleConfig()


def test_load_from_string():
    config = load_config_from_string(
        """
strict: true
props: false
exclude:
  - "*Test.php"
exclude-regex: "/legacy/"
jobs: 4
format: json
"""
    )
    assert config.strict is True
    assert config.exclude == ("*Test.php",)
    assert config.exclude_regex == ("/legacy/",)
    assert config.jobs == 4
    assert config.output_format == "json"


def test_empty_document():
    assert load_config_from_string("") == ExplicitnessConfig()


def test_default_file_in_working_directory(tmp_path: Path):
    (tmp_path / ".explicitness.yaml").write_text("props: true\n")
    config = ExplicitnessConfig.load()
    assert config.props is True
    assert config.source == ".explicitness.yaml"


def test_explicit_path(tmp_path: Path):
    path = tmp_path / "custom.yaml"
    path.write_text("strict: yes\n")
    assert ExplicitnessConfig.load(path).strict is True


def test_environment_overrides_file(tmp_path: Path, monkeypatch):
    (tmp_path / ".explicitness.yaml").write_text("strict: true\njobs: 2\n")
    monkeypatch.setenv("EXPLICITNESS_STRICT", "off")
    monkeypatch.setenv("EXPLICITNESS_PROPS", "1")
    monkeypatch.setenv("EXPLICITNESS_JOBS", "8")
    config = ExplicitnessConfig.load()
    assert config.strict is False
    assert config.props is True
    assert config.jobs == 8


def test_bad_environment_value(monkeypatch):
    monkeypatch.setenv("EXPLICITNESS_PROPS", "maybe")
    with pytest.raises(ConfigError, match="EXPLICITNESS_PROPS"):
        ExplicitnessConfig.load()


def test_bad_jobs_environment(monkeypatch):
    monkeypatch.setenv("EXPLICITNESS_JOBS", "many")
    with pytest.raises(ConfigError, match="integer"):
        ExplicitnessConfig.load()


@pytest.mark.parametrize(
    "text, message",
    [
        ("strict: 1\n", "true or false"),
        ("colour: red\n", "Unknown config keys"),
        ("exclude: 3\n", "list of strings"),
        ("jobs: 0\n", "at least 1"),
        ("jobs: two\n", "integer"),
        ("format: xml\n", "format must be one of"),
        ("- strict\n", "mapping"),
        ("strict: [\n", "Invalid YAML"),
    ],
)
def test_invalid_config(text: str, message: str):
    with pytest.raises(ConfigError, match=message):
        load_config_from_string(text)


def test_overrides_ignore_none():
    config = ExplicitnessConfig(jobs=3).with_overrides(jobs=None, strict=True)
    assert config.jobs == 3
    assert config.strict is True


def test_overrides_are_validated():
    with pytest.raises(ConfigError):
        ExplicitnessConfig().with_overrides(jobs=0)


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)
