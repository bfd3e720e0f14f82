"""Tests for violation aggregation and exit status."""

from __future__ import annotations

import itertools

from explicitness.analyzer.aggregator import Aggregator
from explicitness.analyzer.models import (
    Category,
    Direction,
    ParseFailure,
    Severity,
    Violation,
)


def _violation(category: Category, line: int = 1, function: str = "f", file: str = "a.php") -> Violation:
    return Violation(
        file=file,
        line=line,
        function=function,
        direction=Direction.READ,
        category=category,
        description="test",
    )


def test_empty_run():
    result = Aggregator().finalize()
    assert result.violations == ()
    assert result.max_severity == Severity.NONE
    assert result.exit_code == 0
    assert result.counts[Severity.CRITICAL] == 0


def test_order_is_discovery_order():
    agg = Aggregator()
    critical = _violation(Category.SYSTEM_CLOCK, line=1)
    minor = _violation(Category.STANDARD_OUTPUT_WRITE, line=2)
    serious = _violation(Category.GLOBAL_VARIABLE, line=3)
    for v in (critical, minor, serious):
        agg.record(v)
    result = agg.finalize()
    assert result.violations == (critical, minor, serious)
    assert result.max_severity == Severity.CRITICAL
    assert result.counts == {Severity.MINOR: 1, Severity.SERIOUS: 1, Severity.CRITICAL: 1}


def test_finalize_is_repeatable():
    agg = Aggregator()
    agg.record(_violation(Category.GLOBAL_VARIABLE))
    agg.mark_analyzed("a.php")
    assert agg.finalize() == agg.finalize()


def test_failures_do_not_affect_severity():
    agg = Aggregator()
    agg.record_failure(ParseFailure(file="bad.php", message="syntax error on line 3"))
    result = agg.finalize()
    assert result.exit_code == 0
    assert result.parse_failures[0].file == "bad.php"
    assert str(result.parse_failures[0]) == "bad.php: syntax error on line 3"


def test_exit_code_is_max_severity():
    categories = [
        Category.STANDARD_OUTPUT_WRITE,
        Category.GLOBAL_VARIABLE,
        Category.ENVIRONMENT,
    ]
    for size in range(len(categories) + 1):
        for combo in itertools.combinations(categories, size):
            agg = Aggregator()
            for category in combo:
                agg.record(_violation(category))
            expected = max((c.severity for c in combo), default=Severity.NONE)
            result = agg.finalize()
            assert result.exit_code == int(expected)
            assert result.exit_code in (0, 1, 2, 3)


def test_grouping_views():
    agg = Aggregator()
    agg.record_all(
        [
            _violation(Category.GLOBAL_VARIABLE, function="f", file="a.php"),
            _violation(Category.SUPERGLOBAL, function="g", file="a.php"),
            _violation(Category.ENVIRONMENT, function="f", file="b.php"),
        ]
    )
    result = agg.finalize()
    assert list(result.by_file()) == ["a.php", "b.php"]
    assert list(result.by_function()) == [("a.php", "f"), ("a.php", "g"), ("b.php", "f")]
