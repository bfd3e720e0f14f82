"""PHP syntax tree adapter built on tree-sitter-php.

Turns source text into a ``SourceUnit`` and exposes the small node interface
the analyzer consumes: node kind, source line, child enumeration tagged with
the role each child plays in its parent, and a few kind-specific accessors.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

import tree_sitter_php
from tree_sitter import Language, Node, Parser

from explicitness.analyzer.models import ParseError

logger = logging.getLogger(__name__)

PHP_LANGUAGE = Language(tree_sitter_php.language_php())

MAIN_DECLARATION = "{main}"
CLOSURE_DECLARATION = "{closure}"

FUNCTION_KINDS = frozenset({"function_definition"})
CLOSURE_KINDS = frozenset(
    {"anonymous_function", "anonymous_function_creation_expression", "arrow_function"}
)
CLASS_KINDS = frozenset(
    {
        "class_declaration",
        "trait_declaration",
        "interface_declaration",
        "enum_declaration",
        "anonymous_class",
    }
)
_PARAMETER_KINDS = frozenset(
    {"simple_parameter", "variadic_parameter", "property_promotion_parameter"}
)
_MEMBER_LIST_KINDS = frozenset({"declaration_list", "enum_declaration_list"})


class Role(enum.Enum):
    """The part a child node plays inside its parent."""

    VALUE = "value"
    ASSIGN_TARGET = "assign_target"
    COMPOUND_TARGET = "compound_target"
    UPDATE_TARGET = "update_target"
    BINDING = "binding"
    UNSET_TARGET = "unset_target"
    CALLEE = "callee"
    ARGUMENT = "argument"
    NAME = "name"


class SyntaxNode:
    """Thin wrapper over a tree-sitter node."""

    __slots__ = ("_node",)

    def __init__(self, node: Node) -> None:
        self._node = node

    def __repr__(self) -> str:
        return f"SyntaxNode({self.kind!r}, line={self.line})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SyntaxNode):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def _key(self) -> tuple[str, int, int]:
        return (self._node.type, self._node.start_byte, self._node.end_byte)

    @property
    def kind(self) -> str:
        return self._node.type

    @property
    def line(self) -> int:
        return self._node.start_point[0] + 1

    @property
    def text(self) -> str:
        raw = self._node.text
        return raw.decode("utf-8", errors="replace") if raw else ""

    @property
    def named_children(self) -> list[SyntaxNode]:
        return [SyntaxNode(c) for c in self._node.named_children if c.type != "comment"]

    def field(self, name: str) -> SyntaxNode | None:
        child = self._node.child_by_field_name(name)
        return SyntaxNode(child) if child is not None else None

    def has_child_kind(self, kind: str) -> bool:
        return any(c.type == kind for c in self._node.children)

    @property
    def operator(self) -> str | None:
        """Operator token of a unary or binary expression, lower-cased."""
        op = self._node.child_by_field_name("operator")
        if op is None:
            op = next((c for c in self._node.children if not c.is_named), None)
        return op.type.lower() if op is not None else None

    @property
    def variable_name(self) -> str | None:
        """``$name`` for plain variable references, else None."""
        if self.kind == "variable_name":
            return self.text
        return None

    @property
    def callee_name(self) -> str | None:
        """Static callee of a function call; None for dynamic callees."""
        if self.kind != "function_call_expression":
            return None
        function = self.field("function")
        if function is None:
            function = next(iter(self.named_children), None)
        if function is not None and function.kind in ("name", "qualified_name"):
            return function.text
        return None

    @property
    def is_global_declaration(self) -> bool:
        return self.kind == "global_declaration"

    @property
    def globalized_names(self) -> list[SyntaxNode]:
        """Variables named by a ``global`` statement (plain or dynamic)."""
        if not self.is_global_declaration:
            return []
        return [
            c
            for c in self.named_children
            if c.kind in ("variable_name", "dynamic_variable_name")
        ]

    def walk(self) -> Iterator[tuple[SyntaxNode, Role]]:
        """Yield named children with the role each plays in this node."""
        fields: dict[SyntaxNode, Role] = {}
        for field_name, role in _FIELD_ROLES.get(self.kind, {}).items():
            child = self.field(field_name)
            if child is not None:
                fields[child] = role

        positional = _POSITIONAL_ROLES.get(self.kind)
        for index, child in enumerate(self.named_children):
            role = fields.get(child)
            if role is None and positional is not None:
                role = positional(self, index, child)
            yield child, role or Role.VALUE


_FIELD_ROLES: dict[str, dict[str, Role]] = {
    "assignment_expression": {"left": Role.ASSIGN_TARGET, "right": Role.VALUE},
    "reference_assignment_expression": {"left": Role.ASSIGN_TARGET, "right": Role.VALUE},
    "augmented_assignment_expression": {"left": Role.COMPOUND_TARGET, "right": Role.VALUE},
    "update_expression": {"argument": Role.UPDATE_TARGET},
    "function_call_expression": {"function": Role.CALLEE, "arguments": Role.ARGUMENT},
    "member_call_expression": {"name": Role.NAME, "arguments": Role.ARGUMENT},
    "nullsafe_member_call_expression": {"name": Role.NAME, "arguments": Role.ARGUMENT},
    "scoped_call_expression": {"name": Role.NAME, "arguments": Role.ARGUMENT},
    "member_access_expression": {"name": Role.NAME},
    "nullsafe_member_access_expression": {"name": Role.NAME},
    "scoped_property_access_expression": {"scope": Role.NAME, "name": Role.NAME},
    "class_constant_access_expression": {},
    "catch_clause": {"type": Role.NAME, "name": Role.BINDING},
    "static_variable_declaration": {"name": Role.BINDING},
    "object_creation_expression": {},
}


def _update_role(parent: SyntaxNode, index: int, child: SyntaxNode) -> Role:
    # Older grammars carry no field names on update expressions.
    return Role.UPDATE_TARGET


def _call_role(parent: SyntaxNode, index: int, child: SyntaxNode) -> Role:
    if child.kind == "arguments":
        return Role.ARGUMENT
    return Role.CALLEE if index == 0 else Role.VALUE


def _scoped_role(parent: SyntaxNode, index: int, child: SyntaxNode) -> Role:
    if child.kind == "arguments":
        return Role.ARGUMENT
    if child.kind in ("relative_scope", "name", "qualified_name"):
        return Role.NAME
    return Role.VALUE


def _foreach_role(parent: SyntaxNode, index: int, child: SyntaxNode) -> Role:
    body = parent.field("body")
    if index == 0 or (body is not None and body == child):
        return Role.VALUE
    if child.kind in ("compound_statement", "colon_block") or child.kind.endswith("_statement"):
        return Role.VALUE
    return Role.BINDING


def _unset_role(parent: SyntaxNode, index: int, child: SyntaxNode) -> Role:
    return Role.UNSET_TARGET


def _constant_role(parent: SyntaxNode, index: int, child: SyntaxNode) -> Role:
    if child.kind in ("relative_scope", "name", "qualified_name"):
        return Role.NAME
    return Role.VALUE


def _creation_role(parent: SyntaxNode, index: int, child: SyntaxNode) -> Role:
    if child.kind == "arguments":
        return Role.ARGUMENT
    if child.kind in ("name", "qualified_name"):
        return Role.NAME
    return Role.VALUE


_POSITIONAL_ROLES = {
    "update_expression": _update_role,
    "function_call_expression": _call_role,
    "scoped_call_expression": _scoped_role,
    "scoped_property_access_expression": _scoped_role,
    "member_call_expression": _scoped_role,
    "nullsafe_member_call_expression": _scoped_role,
    "foreach_statement": _foreach_role,
    "unset_statement": _unset_role,
    "class_constant_access_expression": _constant_role,
    "object_creation_expression": _creation_role,
}


@dataclass(frozen=True)
class Declaration:
    """A function, method, closure or the synthetic top-level declaration."""

    name: str
    parameters: tuple[str, ...] = ()
    body: tuple[SyntaxNode, ...] = ()
    enclosing_class: str | None = None
    is_static: bool = False
    line: int = 1

    @property
    def is_top_level(self) -> bool:
        return self.name == MAIN_DECLARATION

    @property
    def qualified_name(self) -> str:
        if self.enclosing_class and not self.name.startswith("{"):
            return f"{self.enclosing_class}::{self.name}"
        return self.name


@dataclass
class SourceUnit:
    """A parsed source file."""

    file: str
    root: SyntaxNode
    source: str = ""
    declarations: list[Declaration] = field(default_factory=list)


def parse_php(source: str, file: str = "<string>") -> SourceUnit:
    """Parse PHP source. Raises ParseError when the tree contains errors."""
    parser = Parser(PHP_LANGUAGE)
    tree = parser.parse(source.encode("utf-8"))
    root = tree.root_node
    if root.has_error:
        bad = _first_error(root)
        line = bad.start_point[0] + 1 if bad is not None else 1
        kind = "missing token" if bad is not None and bad.is_missing else "syntax error"
        raise ParseError(file, f"{kind} on line {line}")
    unit = SourceUnit(file=file, root=SyntaxNode(root), source=source)
    unit.declarations = list_declarations(unit)
    logger.debug("Parsed %s: %d declarations", file, len(unit.declarations))
    return unit


def _first_error(root: Node) -> Node | None:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            return node
        if node.has_error:
            stack.extend(reversed(node.children))
    return None


def list_declarations(unit: SourceUnit) -> list[Declaration]:
    """Top-level functions and class methods in source order, then ``{main}``."""
    declarations: list[Declaration] = []
    main_body: list[SyntaxNode] = []
    _collect(unit.root, declarations, main_body)
    declarations.append(
        Declaration(name=MAIN_DECLARATION, body=tuple(main_body), line=1)
    )
    return declarations


def _collect(
    container: SyntaxNode,
    declarations: list[Declaration],
    main_body: list[SyntaxNode],
) -> None:
    for statement in container.named_children:
        kind = statement.kind
        if kind in ("php_tag", "text", "text_interpolation"):
            continue
        if kind in FUNCTION_KINDS:
            declarations.append(function_declaration(statement))
        elif kind in CLASS_KINDS:
            declarations.extend(method_declarations(statement))
        elif kind == "namespace_definition":
            body = statement.field("body")
            if body is not None:
                _collect(body, declarations, main_body)
        else:
            main_body.append(statement)


def function_declaration(node: SyntaxNode, enclosing_class: str | None = None) -> Declaration:
    name = node.field("name")
    return Declaration(
        name=name.text if name is not None else CLOSURE_DECLARATION,
        parameters=parameter_names(node),
        body=_body_statements(node),
        enclosing_class=enclosing_class,
        is_static=node.has_child_kind("static_modifier"),
        line=node.line,
    )


def method_declarations(node: SyntaxNode) -> list[Declaration]:
    """Methods with bodies declared by a class-like node."""
    name = node.field("name")
    class_name = name.text if name is not None else "class@anonymous"
    members = node.field("body")
    if members is None:
        members = next((c for c in node.named_children if c.kind in _MEMBER_LIST_KINDS), None)
    if members is None:
        return []
    return methods_in(members, class_name)


def methods_in(members: SyntaxNode, class_name: str) -> list[Declaration]:
    methods = []
    for member in members.named_children:
        if member.kind != "method_declaration" or member.field("body") is None:
            continue
        methods.append(function_declaration(member, enclosing_class=class_name))
    return methods


def closure_declaration(node: SyntaxNode, enclosing_class: str | None = None) -> Declaration:
    """Declaration for an anonymous or arrow function found inside a body.

    ``use`` clause variables are bound as parameters of the closure.
    """
    names = list(parameter_names(node))
    for child in node.named_children:
        if child.kind == "anonymous_function_use_clause":
            for captured in child.named_children:
                var = _first_variable(captured)
                if var is not None and var not in names:
                    names.append(var)
    return Declaration(
        name=CLOSURE_DECLARATION,
        parameters=tuple(names),
        body=_body_statements(node),
        enclosing_class=enclosing_class,
        is_static=node.has_child_kind("static_modifier"),
        line=node.line,
    )


def parameter_names(node: SyntaxNode) -> tuple[str, ...]:
    params = node.field("parameters")
    if params is None:
        return ()
    names = []
    for param in params.named_children:
        if param.kind not in _PARAMETER_KINDS:
            continue
        var = _first_variable(param.field("name") or param)
        if var is not None:
            names.append(var)
    return tuple(names)


def _first_variable(node: SyntaxNode) -> str | None:
    if node.kind == "variable_name":
        return node.text
    for child in node.named_children:
        found = _first_variable(child)
        if found is not None:
            return found
    return None


def _body_statements(node: SyntaxNode) -> tuple[SyntaxNode, ...]:
    body = node.field("body")
    if body is None:
        return ()
    if body.kind == "compound_statement":
        return tuple(body.named_children)
    # Arrow functions have a single expression body.
    return (body,)


def literal_string(node: SyntaxNode) -> str | None:
    """Value of a string or integer literal without interpolation."""
    if node.kind == "integer":
        return node.text
    if node.kind in ("string", "encapsed_string"):
        allowed = {"string_content", "string_value", "escape_sequence"}
        if all(c.kind in allowed for c in node.named_children):
            text = node.text
            if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"":
                return text[1:-1]
    return None
