"""Access and call classifiers — turn one access or call into violations.

Each classifier returns a list: empty when the access is explicit, one
violation for a plain read or write, two (read then write) for
read-modify-write operations and for calls that both load and store state.

A plain read of a subject the body has already written is not reported: it
observes the function's own output rather than an implicit input. Subjects are
exact element paths (`$_SESSION['user']` is not `$_SESSION['role']`), and an
element with a computed key is never matched. A write inside a branch only
covers the reads that follow it in the same branch.
"""

from __future__ import annotations

from dataclasses import dataclass

from explicitness.analyzer.models import AccessContext, Category, Direction, Violation
from explicitness.analyzer.rules import RuleTable
from explicitness.analyzer.scope import NameKind, ScopeContext, ScopeTracker

_VERBS = {Direction.READ: "reads", Direction.WRITE: "writes"}


def element_subject(base: str, path: tuple[str | None, ...] = ()) -> str | None:
    """Subject for `base` followed by `path` segments such as ``['k']`` or ``->p``.

    None when a segment is not literal.
    """
    if any(segment is None for segment in path):
        return None
    return base + "".join(path)


@dataclass(frozen=True)
class Site:
    """Where an access happens."""

    file: str
    line: int


def _emit(
    ctx: ScopeContext,
    site: Site,
    category: Category,
    context: AccessContext,
    describe: str,
    subject: str | None = None,
) -> list[Violation]:
    if (
        context is AccessContext.READ
        and subject is not None
        and ctx.was_written(category.value, subject)
    ):
        return []
    violations = [
        Violation(
            file=site.file,
            line=site.line,
            function=ctx.function,
            direction=direction,
            category=category,
            description=f"{_VERBS[direction]} {describe}",
        )
        for direction in context.directions
    ]
    if subject is not None and context is not AccessContext.READ:
        ctx.mark_written(category.value, subject)
    return violations


def classify_variable_access(
    tracker: ScopeTracker,
    ctx: ScopeContext,
    name: str,
    context: AccessContext,
    site: Site,
    path: tuple[str | None, ...] = (),
) -> list[Violation]:
    """Classify a ``$name`` reference, or an element of it reached through ``path``."""
    kind = tracker.classify(ctx, name)
    if not kind.is_implicit:
        return []
    subject = element_subject(name, path)
    if kind is NameKind.SUPERGLOBAL:
        return _emit(ctx, site, Category.SUPERGLOBAL, context, f"superglobal {name}", subject)
    return _emit(ctx, site, Category.GLOBAL_VARIABLE, context, f"global {name}", subject)


def classify_globals_access(
    rules: RuleTable,
    ctx: ScopeContext,
    key: str | None,
    context: AccessContext,
    site: Site,
    path: tuple[str | None, ...] = (),
) -> list[Violation]:
    """Classify an indexed access into the all-globals array.

    A literal key resolves to the named global; anything else cannot be
    resolved statically and is reported as dynamic access.
    """
    container = rules.globals_array_name
    if key is None:
        return _emit(
            ctx,
            site,
            Category.DYNAMIC_GLOBAL_ACCESS,
            context,
            f"{container} with a dynamic key",
        )
    return _emit(
        ctx,
        site,
        Category.GLOBAL_VARIABLE,
        context,
        f"global ${key} via {container}['{key}']",
        element_subject(f"${key}", path),
    )


def classify_dynamic_variable(
    ctx: ScopeContext,
    expression: str,
    context: AccessContext,
    site: Site,
) -> list[Violation]:
    """Classify a variable-variable such as ``${$name}``.

    Only bodies that globalized a dynamic name are affected; otherwise the
    variable-variable lives in the local symbol table.
    """
    if not ctx.dynamic_globals:
        return []
    return _emit(
        ctx,
        site,
        Category.DYNAMIC_GLOBAL_ACCESS,
        context,
        f"dynamically named global {expression}",
    )


def classify_property_access(
    rules: RuleTable,
    ctx: ScopeContext,
    owner: str,
    property_name: str,
    context: AccessContext,
    site: Site,
    path: tuple[str | None, ...] = (),
    *,
    static: bool,
) -> list[Violation]:
    """Classify ``$this->prop`` (instance) or ``Owner::$prop`` (static)."""
    if not rules.property_rules_enabled:
        return []
    if static:
        name = property_name if property_name.startswith("$") else f"${property_name}"
        owned = f"{owner}::{name}"
        return _emit(
            ctx,
            site,
            Category.STATIC_PROPERTY,
            context,
            f"static property {owned}",
            element_subject(owned, path),
        )
    owned = f"{owner}->{property_name}"
    return _emit(
        ctx,
        site,
        Category.INSTANCE_PROPERTY,
        context,
        f"property {owned}",
        element_subject(owned, path),
    )


def classify_call(
    callee: str,
    rules: RuleTable,
    ctx: ScopeContext,
    site: Site,
) -> list[Violation]:
    """Classify a call (or echo/print construct) by its callee name.

    Unknown callees are assumed explicit.
    """
    rule = rules.lookup_call(callee)
    if rule is None:
        return []
    label = callee.lstrip("\\")
    if label.lower() not in ("echo", "print"):
        label = f"{label}()"
    return [
        Violation(
            file=site.file,
            line=site.line,
            function=ctx.function,
            direction=direction,
            category=rule.category,
            description=f"{label} {rule.description}",
        )
        for direction in rule.directions
    ]
