"""Analyzer data models — severities, categories, violations and run results."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field


class Severity(enum.IntEnum):
    """Totally ordered severity tier. The value doubles as the exit code."""

    NONE = 0
    MINOR = 1
    SERIOUS = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return self.name.lower()


class Direction(enum.Enum):
    """Whether an access flows into (read) or out of (write) the function."""

    READ = "read"
    WRITE = "write"


class AccessContext(enum.Enum):
    """How the surrounding syntax uses an accessed location."""

    READ = "read"
    WRITE = "write"
    READ_WRITE = "read_write"

    @property
    def directions(self) -> tuple[Direction, ...]:
        if self is AccessContext.READ:
            return (Direction.READ,)
        if self is AccessContext.WRITE:
            return (Direction.WRITE,)
        return (Direction.READ, Direction.WRITE)


class Category(enum.Enum):
    """Kind of implicit state touched by an access or call."""

    STANDARD_OUTPUT_WRITE = "standard_output_write"
    GLOBAL_VARIABLE = "global_variable"
    SUPERGLOBAL = "superglobal"
    DYNAMIC_GLOBAL_ACCESS = "dynamic_global_access"
    INSTANCE_PROPERTY = "instance_property"
    STATIC_PROPERTY = "static_property"
    FILESYSTEM = "filesystem"
    ENVIRONMENT = "environment"
    SYSTEM_CLOCK = "system_clock"
    RANDOM_SOURCE = "random_source"
    HTTP_HEADER = "http_header"
    SESSION_STATE = "session_state"
    ERROR_LOG = "error_log"

    @property
    def severity(self) -> Severity:
        return CATEGORY_SEVERITY[self]


# Fixed policy: not user-configurable. Flags only decide whether a category
# can fire at all.
CATEGORY_SEVERITY: Mapping[Category, Severity] = {
    Category.STANDARD_OUTPUT_WRITE: Severity.MINOR,
    Category.GLOBAL_VARIABLE: Severity.SERIOUS,
    Category.SUPERGLOBAL: Severity.SERIOUS,
    Category.DYNAMIC_GLOBAL_ACCESS: Severity.SERIOUS,
    Category.INSTANCE_PROPERTY: Severity.SERIOUS,
    Category.STATIC_PROPERTY: Severity.SERIOUS,
    Category.FILESYSTEM: Severity.CRITICAL,
    Category.ENVIRONMENT: Severity.CRITICAL,
    Category.SYSTEM_CLOCK: Severity.CRITICAL,
    Category.RANDOM_SOURCE: Severity.CRITICAL,
    Category.HTTP_HEADER: Severity.CRITICAL,
    Category.SESSION_STATE: Severity.CRITICAL,
    Category.ERROR_LOG: Severity.CRITICAL,
}


@dataclass(frozen=True)
class Violation:
    """A single implicit input or output found in a function body."""

    file: str
    line: int
    function: str
    direction: Direction
    category: Category
    description: str

    @property
    def severity(self) -> Severity:
        return self.category.severity


@dataclass(frozen=True)
class ParseFailure:
    """A source unit that could not be parsed or read."""

    file: str
    message: str

    def __str__(self) -> str:
        return f"{self.file}: {self.message}"


class ParseError(Exception):
    """Raised by the syntax tree adapter when a source unit does not parse."""

    def __init__(self, file: str, message: str) -> None:
        super().__init__(f"{file}: {message}")
        self.file = file
        self.message = message

    def to_failure(self) -> ParseFailure:
        return ParseFailure(file=self.file, message=self.message)


@dataclass(frozen=True)
class RunResult:
    """Aggregate, immutable outcome of one analysis run."""

    violations: tuple[Violation, ...] = ()
    max_severity: Severity = Severity.NONE
    counts: Mapping[Severity, int] = field(default_factory=dict)
    parse_failures: tuple[ParseFailure, ...] = ()
    files_analyzed: int = 0

    @property
    def exit_code(self) -> int:
        """Process exit status: none=0, minor=1, serious=2, critical=3."""
        return int(self.max_severity)

    def by_file(self) -> dict[str, list[Violation]]:
        grouped: dict[str, list[Violation]] = {}
        for v in self.violations:
            grouped.setdefault(v.file, []).append(v)
        return grouped

    def by_function(self) -> dict[tuple[str, str], list[Violation]]:
        grouped: dict[tuple[str, str], list[Violation]] = {}
        for v in self.violations:
            grouped.setdefault((v.file, v.function), []).append(v)
        return grouped
