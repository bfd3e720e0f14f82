"""Run configuration — YAML file, environment variables, defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

import yaml

from explicitness.analyzer.rules import RuleConfig
from explicitness.files import DEFAULT_INCLUDE

DEFAULT_CONFIG_FILE = ".explicitness.yaml"
OUTPUT_FORMATS = ("table", "json")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


class ConfigError(ValueError):
    """Raised for malformed configuration files or values."""


@dataclass(frozen=True)
class ExplicitnessConfig:
    """Settings for one run. Only ``strict`` and ``props`` affect classification."""

    strict: bool = False
    props: bool = False
    include: tuple[str, ...] = DEFAULT_INCLUDE
    exclude: tuple[str, ...] = ()
    exclude_regex: tuple[str, ...] = ()
    jobs: int = 1
    output_format: str = "table"
    source: str = field(default="", compare=False)

    def rule_config(self) -> RuleConfig:
        return RuleConfig(strict=self.strict, props=self.props)

    def with_overrides(self, **overrides: object) -> ExplicitnessConfig:
        """Apply CLI values; None means "not given" and keeps the current value."""
        given = {k: v for k, v in overrides.items() if v is not None}
        config = replace(self, **given)
        _validate(config)
        return config

    @classmethod
    def load(cls, path: str | Path | None = None) -> ExplicitnessConfig:
        """Load defaults, then the YAML file, then environment variables.

        Without an explicit path, ``.explicitness.yaml`` in the working
        directory is used when present.
        """
        config = cls()
        if path is None and Path(DEFAULT_CONFIG_FILE).is_file():
            path = DEFAULT_CONFIG_FILE
        if path is not None:
            config = _from_file(config, Path(path))

        env_strict = os.environ.get("EXPLICITNESS_STRICT")
        if env_strict is not None:
            config = replace(config, strict=_parse_bool("EXPLICITNESS_STRICT", env_strict))

        env_props = os.environ.get("EXPLICITNESS_PROPS")
        if env_props is not None:
            config = replace(config, props=_parse_bool("EXPLICITNESS_PROPS", env_props))

        env_jobs = os.environ.get("EXPLICITNESS_JOBS")
        if env_jobs:
            try:
                config = replace(config, jobs=int(env_jobs))
            except ValueError as e:
                raise ConfigError(f"EXPLICITNESS_JOBS must be an integer, got {env_jobs!r}") from e

        _validate(config)
        return config


def load_config_from_string(text: str) -> ExplicitnessConfig:
    """Parse a YAML string into a config (no environment overlay)."""
    config = _apply_mapping(ExplicitnessConfig(), _parse_yaml(text, "<string>"))
    _validate(config)
    return config


def _from_file(config: ExplicitnessConfig, path: Path) -> ExplicitnessConfig:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    config = _apply_mapping(config, _parse_yaml(text, str(path)))
    return replace(config, source=str(path))


def _parse_yaml(text: str, origin: str) -> dict:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {origin}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config in {origin} must be a mapping")
    return data


def _apply_mapping(config: ExplicitnessConfig, data: dict) -> ExplicitnessConfig:
    known = {f.name for f in fields(ExplicitnessConfig) if f.name != "source"}
    # YAML uses `format`, the dataclass `output_format`.
    data = dict(data)
    if "format" in data:
        data["output_format"] = data.pop("format")
    data = {k.replace("-", "_"): v for k, v in data.items()}

    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    values: dict[str, object] = {}
    for key, value in data.items():
        if key in ("strict", "props"):
            if not isinstance(value, bool):
                raise ConfigError(f"'{key}' must be true or false")
            values[key] = value
        elif key in ("include", "exclude", "exclude_regex"):
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"'{key}' must be a string or a list of strings")
            values[key] = tuple(value)
        elif key == "jobs":
            if not isinstance(value, int) or isinstance(value, bool):
                raise ConfigError("'jobs' must be an integer")
            values[key] = value
        else:
            values[key] = value
    return replace(config, **values)


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _validate(config: ExplicitnessConfig) -> None:
    if config.jobs < 1:
        raise ConfigError(f"jobs must be at least 1, got {config.jobs}")
    if config.output_format not in OUTPUT_FORMATS:
        raise ConfigError(
            f"format must be one of {', '.join(OUTPUT_FORMATS)}, got {config.output_format!r}"
        )
