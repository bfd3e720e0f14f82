"""Analysis engine — walks declaration bodies and orchestrates runs over files."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from explicitness.analyzer.aggregator import Aggregator
from explicitness.analyzer.classifier import (
    Site,
    classify_call,
    classify_dynamic_variable,
    classify_globals_access,
    classify_property_access,
    classify_variable_access,
)
from explicitness.analyzer.models import (
    AccessContext,
    ParseError,
    ParseFailure,
    RunResult,
    Violation,
)
from explicitness.analyzer.rules import RuleConfig, RuleTable, build_rule_table
from explicitness.analyzer.scope import ScopeContext, ScopeTracker
from explicitness.parser.php import (
    CLASS_KINDS,
    CLOSURE_KINDS,
    FUNCTION_KINDS,
    Declaration,
    Role,
    SyntaxNode,
    closure_declaration,
    function_declaration,
    literal_string,
    method_declarations,
    methods_in,
    parse_php,
)

logger = logging.getLogger(__name__)

_ASSIGNMENT_KINDS = frozenset(
    {
        "assignment_expression",
        "reference_assignment_expression",
        "augmented_assignment_expression",
    }
)
_ACCESS_KINDS = frozenset(
    {
        "variable_name",
        "dynamic_variable_name",
        "subscript_expression",
        "member_access_expression",
        "nullsafe_member_access_expression",
        "scoped_property_access_expression",
    }
)
_OUTPUT_CONSTRUCTS = {"echo_statement": "echo", "print_intrinsic": "print"}
_NAME_KINDS = frozenset({"name", "qualified_name", "relative_scope"})
_DESTRUCTURE_KINDS = frozenset({"list_literal", "array_creation_expression"})

# Children from the second on only run on some paths.
_GUARDED_KINDS = frozenset(
    {
        "if_statement",
        "while_statement",
        "for_statement",
        "foreach_statement",
        "try_statement",
        "conditional_expression",
    }
)
# Every child is one alternative.
_ALTERNATIVE_KINDS = frozenset({"switch_block", "match_block"})
_SHORT_CIRCUIT = frozenset({"&&", "||", "??", "and", "or"})

_TARGET_CONTEXT = {
    Role.ASSIGN_TARGET: AccessContext.WRITE,
    Role.BINDING: AccessContext.WRITE,
    Role.UNSET_TARGET: AccessContext.WRITE,
    Role.COMPOUND_TARGET: AccessContext.READ_WRITE,
    Role.UPDATE_TARGET: AccessContext.READ_WRITE,
}


@dataclass
class FileReport:
    """Outcome of analyzing one source file."""

    file: str
    violations: list[Violation] = field(default_factory=list)
    failure: ParseFailure | None = None


class BodyWalker:
    """Visits the statements of one file's declarations in source order.

    Closures, nested functions and nested classes found inside a body are
    analyzed as declarations of their own, with a fresh scope.
    """

    def __init__(self, rules: RuleTable, file: str) -> None:
        self.rules = rules
        self.file = file
        self.tracker = ScopeTracker(rules)
        self._groups: list[tuple[int, list[Violation]]] = []

    def analyze(self, decl: Declaration) -> list[Violation]:
        return self.analyze_all([decl])

    def analyze_all(self, declarations: Iterable[Declaration]) -> list[Violation]:
        """Violations of the declarations and of everything nested in them.

        Declarations are ordered by the line they start on; the violations
        of one declaration stay in traversal order.
        """
        self._groups = []
        for decl in declarations:
            self._analyze_into(decl)
        groups, self._groups = self._groups, []
        groups.sort(key=lambda group: group[0])
        return [v for _, found in groups for v in found]

    def _analyze_into(self, decl: Declaration) -> None:
        out: list[Violation] = []
        self._groups.append((decl.line, out))
        ctx = self.tracker.enter_declaration(decl)
        for statement in decl.body:
            self._visit(statement, ctx, out)

    def _report(self, ctx: ScopeContext, out: list[Violation], found: list[Violation]) -> None:
        if ctx.reporting:
            out.extend(found)

    def _site(self, node: SyntaxNode) -> Site:
        return Site(file=self.file, line=node.line)

    # -- read context ----------------------------------------------------

    def _visit(self, node: SyntaxNode, ctx: ScopeContext, out: list[Violation]) -> None:
        kind = node.kind

        if kind in CLOSURE_KINDS:
            self._analyze_into(closure_declaration(node, ctx.enclosing_class))
            return
        if kind in FUNCTION_KINDS:
            self._analyze_into(function_declaration(node))
            return
        if kind in CLASS_KINDS:
            for method in method_declarations(node):
                self._analyze_into(method)
            return
        if kind == "declaration_list":
            # Anonymous class body inside a `new class { ... }` expression.
            for method in methods_in(node, "class@anonymous"):
                self._analyze_into(method)
            return
        if node.is_global_declaration:
            self._declare_globals(node, ctx, out)
            return
        if kind in _ACCESS_KINDS:
            self._access(node, AccessContext.READ, ctx, out)
            return
        if kind in _OUTPUT_CONSTRUCTS:
            self._visit_children(node, ctx, out)
            found = classify_call(_OUTPUT_CONSTRUCTS[kind], self.rules, ctx, self._site(node))
            self._report(ctx, out, found)
            return
        if kind == "function_call_expression":
            self._visit_children(node, ctx, out)
            callee = node.callee_name
            if callee is not None:
                self._report(ctx, out, classify_call(callee, self.rules, ctx, self._site(node)))
            return

        self._visit_children(node, ctx, out)

    def _visit_children(self, node: SyntaxNode, ctx: ScopeContext, out: list[Violation]) -> None:
        children = list(node.walk())
        if node.kind in _ASSIGNMENT_KINDS:
            # The value is evaluated before the target is stored.
            children.sort(key=lambda item: item[1] in _TARGET_CONTEXT)
        branching = _branching(node)
        for index, (child, role) in enumerate(children):
            if role is Role.NAME:
                continue
            if role is Role.CALLEE and child.kind in _NAME_KINDS:
                continue
            conditional = branching is not None and index >= branching
            if conditional:
                ctx.enter_branch()
            context = _TARGET_CONTEXT.get(role)
            if context is None:
                self._visit(child, ctx, out)
            else:
                self._target(child, context, ctx, out)
            if conditional:
                ctx.leave_branch()

    def _declare_globals(self, node: SyntaxNode, ctx: ScopeContext, out: list[Violation]) -> None:
        for var in node.globalized_names:
            if var.variable_name is not None:
                self.tracker.record_global_declaration(ctx, [var.variable_name])
            else:
                self.tracker.record_dynamic_global(ctx)
                self._visit_children(var, ctx, out)

    # -- write context ---------------------------------------------------

    def _target(
        self,
        node: SyntaxNode,
        context: AccessContext,
        ctx: ScopeContext,
        out: list[Violation],
    ) -> None:
        kind = node.kind
        if kind in _ACCESS_KINDS:
            self._access(node, context, ctx, out)
        elif kind == "by_ref":
            for child in node.named_children:
                self._target(child, context, ctx, out)
        elif kind in _DESTRUCTURE_KINDS:
            self._destructure(node, context, ctx, out)
        elif kind in ("pair", "array_element_initializer"):
            children = node.named_children
            for child in children[:-1]:
                if kind == "pair" and child.kind in _ACCESS_KINDS:
                    self._target(child, context, ctx, out)
                else:
                    self._visit(child, ctx, out)
            if children:
                self._target(children[-1], context, ctx, out)
        else:
            self._visit(node, ctx, out)

    def _destructure(
        self,
        node: SyntaxNode,
        context: AccessContext,
        ctx: ScopeContext,
        out: list[Violation],
    ) -> None:
        for element in node.named_children:
            self._target(element, context, ctx, out)

    # -- accesses --------------------------------------------------------

    def _access(
        self,
        node: SyntaxNode,
        context: AccessContext,
        ctx: ScopeContext,
        out: list[Violation],
        path: tuple[str | None, ...] = (),
    ) -> None:
        """Classify an access; ``path`` holds the element segments applied to it."""
        kind = node.kind
        site = self._site(node)

        if kind == "variable_name":
            name = node.text
            found = classify_variable_access(self.tracker, ctx, name, context, site, path)
            self._report(ctx, out, found)
            if context is not AccessContext.READ:
                self.tracker.record_local_binding(ctx, name)
        elif kind == "dynamic_variable_name":
            self._visit_children(node, ctx, out)
            self._report(ctx, out, classify_dynamic_variable(ctx, node.text, context, site))
        elif kind == "subscript_expression":
            self._subscript(node, context, ctx, out, path)
        elif kind == "scoped_property_access_expression":
            self._static_property(node, context, ctx, out, path)
        else:
            self._member(node, context, ctx, out, path)

    def _subscript(
        self,
        node: SyntaxNode,
        context: AccessContext,
        ctx: ScopeContext,
        out: list[Violation],
        path: tuple[str | None, ...],
    ) -> None:
        children = node.named_children
        if not children:
            return
        base = children[0]
        index = children[1] if len(children) > 1 else None
        key = literal_string(index) if index is not None else None

        if base.variable_name == self.rules.globals_array_name:
            if index is not None and key is None:
                self._visit(index, ctx, out)
            found = classify_globals_access(
                self.rules, ctx, key, context, self._site(node), path
            )
            self._report(ctx, out, found)
            return

        if index is not None:
            self._visit(index, ctx, out)
        # Storing into an element mutates the container.
        if base.kind in _ACCESS_KINDS:
            segment = f"['{key}']" if key is not None else None
            self._access(base, context, ctx, out, (segment,) + path)
        else:
            self._visit(base, ctx, out)

    def _member(
        self,
        node: SyntaxNode,
        context: AccessContext,
        ctx: ScopeContext,
        out: list[Violation],
        path: tuple[str | None, ...],
    ) -> None:
        children = node.named_children
        obj = node.field("object") or children[0]
        name = node.field("name") or children[-1]

        if obj.variable_name == "$this":
            if name.kind != "name":
                self._visit(name, ctx, out)
            found = classify_property_access(
                self.rules, ctx, "$this", name.text, context, self._site(node), path, static=False
            )
            self._report(ctx, out, found)
            return

        if name.kind != "name":
            self._visit(name, ctx, out)
        if obj.kind in _ACCESS_KINDS:
            segment = f"->{name.text}" if name.kind == "name" else None
            self._access(obj, context, ctx, out, (segment,) + path)
        else:
            self._visit(obj, ctx, out)

    def _static_property(
        self,
        node: SyntaxNode,
        context: AccessContext,
        ctx: ScopeContext,
        out: list[Violation],
        path: tuple[str | None, ...],
    ) -> None:
        children = node.named_children
        scope = node.field("scope") or children[0]
        name = node.field("name") or children[-1]

        if scope.kind not in _NAME_KINDS:
            self._visit(scope, ctx, out)
        if name.kind != "variable_name":
            self._visit_children(name, ctx, out)
        found = classify_property_access(
            self.rules, ctx, scope.text, name.text, context, self._site(node), path, static=True
        )
        self._report(ctx, out, found)


class Analyzer:
    """Runs the classification engine over source files.

    Files may be analyzed on a worker pool; results are merged in input
    order so the report does not depend on which worker finished first.
    """

    def __init__(self, config: RuleConfig | None = None) -> None:
        self.config = config or RuleConfig()
        self.rules = build_rule_table(self.config)

    def analyze_source(self, source: str, file: str = "<string>") -> FileReport:
        """Parse and classify one source unit."""
        try:
            unit = parse_php(source, file)
        except ParseError as e:
            logger.warning("Skipping %s: %s", file, e.message)
            return FileReport(file=file, failure=e.to_failure())

        violations = BodyWalker(self.rules, file).analyze_all(unit.declarations)
        logger.debug("Analyzed %s: %d violations", file, len(violations))
        return FileReport(file=file, violations=violations)

    def analyze_file(self, path: str | Path) -> FileReport:
        file = str(path)
        try:
            content = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping %s: %s", file, e)
            return FileReport(file=file, failure=ParseFailure(file=file, message=str(e)))
        return self.analyze_source(content, file)

    def analyze_paths(self, paths: Iterable[str | Path], jobs: int = 1) -> RunResult:
        """Analyze files and merge their reports in the given order."""
        files = list(paths)
        aggregator = Aggregator()
        if jobs > 1 and len(files) > 1:
            with ThreadPoolExecutor(max_workers=jobs) as pool:
                reports = list(pool.map(self.analyze_file, files))
        else:
            reports = [self.analyze_file(f) for f in files]

        for report in reports:
            merge_report(aggregator, report)
        return aggregator.finalize()


def merge_report(aggregator: Aggregator, report: FileReport) -> None:
    """Fold one file's report into the run aggregate."""
    if report.failure is not None:
        aggregator.record_failure(report.failure)
        return
    aggregator.mark_analyzed(report.file)
    aggregator.record_all(report.violations)


def _branching(node: SyntaxNode) -> int | None:
    """Index of the first child that runs conditionally, or None."""
    kind = node.kind
    if kind in _ALTERNATIVE_KINDS:
        return 0
    if kind in _GUARDED_KINDS:
        return 1
    if kind == "binary_expression" and node.operator in _SHORT_CIRCUIT:
        return 1
    return None
