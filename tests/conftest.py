"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from explicitness.analyzer.engine import Analyzer
from explicitness.analyzer.models import Violation
from explicitness.analyzer.rules import RuleConfig


@pytest.fixture
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def implicit_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "implicit.php"


@pytest.fixture
def explicit_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "explicit.php"


@pytest.fixture
def ambient_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "ambient.php"


@pytest.fixture
def broken_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "broken.php"


@pytest.fixture
def analyze():
    """Analyze a PHP snippet and return its violations."""

    def _analyze(source: str, strict: bool = False, props: bool = False) -> list[Violation]:
        analyzer = Analyzer(RuleConfig(strict=strict, props=props))
        report = analyzer.analyze_source(source, "snippet.php")
        assert report.failure is None, report.failure
        return report.violations

    return _analyze
