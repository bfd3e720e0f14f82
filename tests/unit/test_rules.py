"""Tests for the rule table and category policy."""

from __future__ import annotations

import pytest

from explicitness.analyzer.models import CATEGORY_SEVERITY, Category, Direction, Severity
from explicitness.analyzer.rules import (
    SYSTEM_CALLS,
    RuleConfig,
    RuleTable,
    build_rule_table,
    normalize_callee,
)


class TestCategorySeverity:
    def test_every_category_has_a_severity(self):
        assert set(CATEGORY_SEVERITY) == set(Category)

    def test_fixed_tiers(self):
        assert Category.STANDARD_OUTPUT_WRITE.severity == Severity.MINOR
        assert Category.GLOBAL_VARIABLE.severity == Severity.SERIOUS
        assert Category.DYNAMIC_GLOBAL_ACCESS.severity == Severity.SERIOUS
        assert Category.INSTANCE_PROPERTY.severity == Severity.SERIOUS
        assert Category.STATIC_PROPERTY.severity == Severity.SERIOUS
        assert Category.ENVIRONMENT.severity == Severity.CRITICAL
        assert Category.SESSION_STATE.severity == Severity.CRITICAL

    def test_severity_order(self):
        assert Severity.NONE < Severity.MINOR < Severity.SERIOUS < Severity.CRITICAL


class TestBuildRuleTable:
    def test_default_has_no_output_rules(self):
        table = build_rule_table()
        assert table.output_primitives == frozenset()
        assert table.lookup_call("var_dump") is None
        assert table.lookup_call("echo") is None
        assert not table.property_rules_enabled

    def test_strict_enables_output_rules(self):
        table = build_rule_table(RuleConfig(strict=True))
        rule = table.lookup_call("var_dump")
        assert rule is not None
        assert rule.category == Category.STANDARD_OUTPUT_WRITE
        assert rule.directions == (Direction.WRITE,)
        assert table.lookup_call("echo") is not None
        assert table.lookup_call("print") is not None

    def test_props_flag_mirrors_property_rules(self):
        assert build_rule_table(RuleConfig(props=True)).property_rules_enabled

    @pytest.mark.parametrize(
        "callee,category,directions",
        [
            ("getenv", Category.ENVIRONMENT, (Direction.READ,)),
            ("putenv", Category.ENVIRONMENT, (Direction.WRITE,)),
            ("file_exists", Category.FILESYSTEM, (Direction.READ,)),
            ("file_put_contents", Category.FILESYSTEM, (Direction.WRITE,)),
            ("microtime", Category.SYSTEM_CLOCK, (Direction.READ,)),
            ("random_bytes", Category.RANDOM_SOURCE, (Direction.READ,)),
            ("mt_srand", Category.RANDOM_SOURCE, (Direction.WRITE,)),
            ("setcookie", Category.HTTP_HEADER, (Direction.WRITE,)),
            ("session_start", Category.SESSION_STATE, (Direction.READ, Direction.WRITE)),
            ("trigger_error", Category.ERROR_LOG, (Direction.WRITE,)),
        ],
    )
    def test_system_calls_always_enabled(self, callee, category, directions):
        for config in (RuleConfig(), RuleConfig(strict=True, props=True)):
            rule = build_rule_table(config).lookup_call(callee)
            assert rule is not None
            assert rule.category == category
            assert rule.directions == directions

    def test_unknown_callee_has_no_rule(self):
        table = build_rule_table(RuleConfig(strict=True, props=True))
        assert table.lookup_call("array_map") is None
        assert table.lookup_call("my_helper") is None

    def test_superglobals(self):
        table = build_rule_table()
        assert table.is_superglobal("$_GET")
        assert table.is_superglobal("$_SESSION")
        assert table.is_superglobal("$GLOBALS")
        assert not table.is_superglobal("$get")
        assert not table.is_superglobal("$config")

    def test_rule_table_is_immutable(self):
        table = build_rule_table()
        with pytest.raises(AttributeError):
            table.property_rules_enabled = True  # type: ignore[misc]
        with pytest.raises(TypeError):
            table.system_calls["my_helper"] = table.system_calls["getenv"]  # type: ignore[index]


class TestNormalizeCallee:
    def test_case_insensitive(self):
        assert normalize_callee("GetEnv") == "getenv"

    def test_fully_qualified_global(self):
        assert normalize_callee("\\time") == "time"

    def test_namespaced_does_not_resolve(self):
        assert normalize_callee("App\\time") is None
        assert normalize_callee("\\App\\time") is None


def test_default_rule_table_shares_system_calls():
    table = RuleTable()
    assert table.system_calls is SYSTEM_CALLS
    assert table.lookup_call("getenv").category == Category.ENVIRONMENT
    assert RuleTable() == table
