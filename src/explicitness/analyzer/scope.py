"""Scope tracking — which names inside a body are local, globalized or ambient."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from explicitness.analyzer.rules import RuleTable
from explicitness.parser.php import Declaration


class NameKind(enum.Enum):
    """Resolution of a variable name inside one body."""

    LOCAL = "local"
    GLOBALIZED = "globalized"
    SUPERGLOBAL = "superglobal"
    UNKNOWN = "unknown"

    @property
    def is_implicit(self) -> bool:
        return self in (NameKind.GLOBALIZED, NameKind.SUPERGLOBAL)


@dataclass
class ScopeContext:
    """Per-declaration scope state. Never shared between declarations."""

    function: str
    local_names: set[str] = field(default_factory=set)
    globalized_names: set[str] = field(default_factory=set)
    enclosing_class: str | None = None
    is_static: bool = False
    dynamic_globals: bool = False
    reporting: bool = True
    # One frame per enclosing branch; writes in a branch end with it.
    written: list[set[tuple[str, str]]] = field(default_factory=lambda: [set()])

    def mark_written(self, kind: str, subject: str) -> None:
        self.written[-1].add((kind, subject))

    def was_written(self, kind: str, subject: str) -> bool:
        return any((kind, subject) in frame for frame in self.written)

    def enter_branch(self) -> None:
        self.written.append(set())

    def leave_branch(self) -> None:
        self.written.pop()


class ScopeTracker:
    """Creates scope contexts and resolves names against them."""

    def __init__(self, rules: RuleTable) -> None:
        self._rules = rules

    def enter_declaration(self, decl: Declaration) -> ScopeContext:
        # Top-level code is only walked to find nested declarations.
        return ScopeContext(
            function=decl.qualified_name,
            local_names=set(decl.parameters),
            enclosing_class=decl.enclosing_class,
            is_static=decl.is_static,
            reporting=not decl.is_top_level,
        )

    def record_global_declaration(self, ctx: ScopeContext, names: list[str]) -> None:
        for name in names:
            ctx.globalized_names.add(name)

    def record_dynamic_global(self, ctx: ScopeContext) -> None:
        ctx.dynamic_globals = True

    def record_local_binding(self, ctx: ScopeContext, name: str) -> None:
        if name in ctx.globalized_names or self._rules.is_superglobal(name):
            return
        ctx.local_names.add(name)

    def classify(self, ctx: ScopeContext, name: str) -> NameKind:
        """Superglobals first, then ``global`` bindings, then locals."""
        if self._rules.is_superglobal(name):
            return NameKind.SUPERGLOBAL
        if name in ctx.globalized_names:
            return NameKind.GLOBALIZED
        if name in ctx.local_names:
            return NameKind.LOCAL
        return NameKind.UNKNOWN
