"""Rule table — which names and calls count as implicit state, per run."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from explicitness.analyzer.models import Category, Direction

_R = (Direction.READ,)
_W = (Direction.WRITE,)
_RW = (Direction.READ, Direction.WRITE)


@dataclass(frozen=True)
class RuleConfig:
    """The only configuration that affects classification."""

    strict: bool = False
    props: bool = False


@dataclass(frozen=True)
class CallRule:
    """How a call to a known function touches ambient state."""

    category: Category
    directions: tuple[Direction, ...]
    description: str


SUPERGLOBAL_NAMES: frozenset[str] = frozenset(
    {
        "$_GET",
        "$_POST",
        "$_REQUEST",
        "$_COOKIE",
        "$_SESSION",
        "$_SERVER",
        "$_ENV",
        "$_FILES",
    }
)

GLOBALS_ARRAY_NAME = "$GLOBALS"

# echo and print are language constructs handled by the engine; these are the
# function-call forms.
OUTPUT_FUNCTIONS: frozenset[str] = frozenset(
    {
        "var_dump",
        "print_r",
        "printf",
        "vprintf",
        "var_export",
        "debug_zval_dump",
        "debug_print_backtrace",
    }
)

OUTPUT_CONSTRUCTS: frozenset[str] = frozenset({"echo", "print"})


def _group(
    category: Category,
    directions: tuple[Direction, ...],
    description: str,
    names: str,
) -> dict[str, CallRule]:
    rule = CallRule(category=category, directions=directions, description=description)
    return {name: rule for name in names.split()}


SYSTEM_CALLS: Mapping[str, CallRule] = MappingProxyType(
    {
        **_group(
            Category.FILESYSTEM,
            _R,
            "queries file system state",
            """
            file_exists is_file is_dir is_link is_readable is_writable
            is_writeable is_executable filesize filemtime fileatime filectime
            fileperms fileowner filegroup fileinode filetype stat lstat glob
            scandir opendir readdir realpath disk_free_space disk_total_space
            """,
        ),
        **_group(
            Category.FILESYSTEM,
            _R,
            "reads from the file system",
            """
            file_get_contents file fopen fread fgets fgetc fgetcsv fscanf
            readfile parse_ini_file
            """,
        ),
        **_group(
            Category.FILESYSTEM,
            _W,
            "writes to the file system",
            """
            file_put_contents fwrite fputs fputcsv ftruncate unlink rename
            copy mkdir rmdir touch chmod chown chgrp symlink link tempnam
            tmpfile move_uploaded_file
            """,
        ),
        **_group(
            Category.ENVIRONMENT,
            _R,
            "reads the process environment",
            "getenv apache_getenv ini_get ini_get_all get_include_path",
        ),
        **_group(
            Category.ENVIRONMENT,
            _W,
            "modifies the process environment",
            "putenv apache_setenv ini_set ini_restore set_include_path",
        ),
        **_group(
            Category.SYSTEM_CLOCK,
            _R,
            "reads the system clock",
            """
            time microtime hrtime date gmdate mktime gmmktime strtotime
            localtime getdate gettimeofday idate date_create
            date_create_immutable
            """,
        ),
        **_group(
            Category.RANDOM_SOURCE,
            _R,
            "reads from the random number generator",
            """
            rand mt_rand random_int random_bytes lcg_value uniqid shuffle
            str_shuffle array_rand
            """,
        ),
        **_group(
            Category.RANDOM_SOURCE,
            _W,
            "reseeds the random number generator",
            "srand mt_srand",
        ),
        **_group(
            Category.HTTP_HEADER,
            _W,
            "sends HTTP headers or cookies",
            "header header_remove setcookie setrawcookie http_response_code",
        ),
        **_group(
            Category.SESSION_STATE,
            _R,
            "reads session state",
            "session_id session_name session_status session_encode session_get_cookie_params",
        ),
        **_group(
            Category.SESSION_STATE,
            _W,
            "modifies session state",
            """
            session_destroy session_regenerate_id session_unset
            session_write_close session_abort session_reset session_decode
            session_set_cookie_params
            """,
        ),
        **_group(
            Category.SESSION_STATE,
            _RW,
            "loads and persists session state",
            "session_start",
        ),
        **_group(
            Category.ERROR_LOG,
            _W,
            "writes to the error log",
            "error_log trigger_error user_error syslog openlog closelog",
        ),
    }
)


@dataclass(frozen=True)
class RuleTable:
    """Immutable per-run rule table derived from a RuleConfig."""

    config: RuleConfig = field(default_factory=RuleConfig)
    superglobal_names: frozenset[str] = SUPERGLOBAL_NAMES
    globals_array_name: str = GLOBALS_ARRAY_NAME
    output_primitives: frozenset[str] = frozenset()
    system_calls: Mapping[str, CallRule] = field(default_factory=lambda: SYSTEM_CALLS)
    property_rules_enabled: bool = False

    @property
    def strict(self) -> bool:
        return self.config.strict

    def is_superglobal(self, name: str) -> bool:
        return name in self.superglobal_names or name == self.globals_array_name

    def lookup_call(self, callee: str) -> CallRule | None:
        """Resolve a callee to its rule. Unknown names resolve to None."""
        name = normalize_callee(callee)
        if name is None:
            return None
        if name in self.output_primitives:
            return CallRule(
                category=Category.STANDARD_OUTPUT_WRITE,
                directions=_W,
                description="writes to standard output",
            )
        return self.system_calls.get(name)


def normalize_callee(callee: str) -> str | None:
    """Lower-case a global function name; namespaced names do not resolve.

    PHP function names are case-insensitive and a fully qualified call such
    as ``\\getenv`` refers to the same global function.
    """
    name = callee.strip()
    if name.startswith("\\"):
        name = name[1:]
    if not name or "\\" in name:
        return None
    return name.lower()


def build_rule_table(config: RuleConfig | None = None) -> RuleTable:
    """Build the rule table for one run."""
    config = config or RuleConfig()
    output = OUTPUT_FUNCTIONS | OUTPUT_CONSTRUCTS if config.strict else frozenset()
    return RuleTable(
        config=config,
        output_primitives=output,
        property_rules_enabled=config.props,
    )
