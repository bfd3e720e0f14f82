"""File discovery — expands paths into the ordered list of files to analyze."""

from __future__ import annotations

import fnmatch
import logging
import os
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_INCLUDE = ("*.php",)

# Directories to always skip
_SKIP_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".idea",
    ".vscode",
    "node_modules",
    "vendor",
    ".phpunit.cache",
    ".php-cs-fixer.cache",
    "cache",
}

# Max file size to analyze (2 MB)
_MAX_FILE_SIZE = 2_097_152


def discover(
    paths: Iterable[str | Path],
    include: Iterable[str] = DEFAULT_INCLUDE,
    exclude: Iterable[str] = (),
    exclude_regex: Iterable[str] = (),
) -> list[Path]:
    """Expand files and directories into a deterministic, de-duplicated list.

    Explicitly named files are kept as given (exclusions still apply);
    directories are walked in sorted order.
    """
    include = tuple(include)
    exclude = tuple(exclude)
    regexes = [re.compile(p) for p in exclude_regex]

    seen: set[Path] = set()
    found: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            candidates: Iterable[Path] = _walk(path, include, exclude)
            base = path
        else:
            candidates = [path]
            base = path.parent
        for candidate in candidates:
            if _is_excluded(candidate, base, exclude, regexes):
                logger.debug("Excluded %s", candidate)
                continue
            key = candidate.resolve()
            if key in seen:
                continue
            seen.add(key)
            found.append(candidate)
    return found


def _walk(directory: Path, include: tuple[str, ...], exclude: tuple[str, ...]) -> Iterator[Path]:
    """Walk directory yielding matching files in sorted order."""
    for root, dirs, files in os.walk(directory):
        # Prune skipped directories in-place
        dirs[:] = sorted(
            d
            for d in dirs
            if d not in _SKIP_DIRS and not any(fnmatch.fnmatch(d, p) for p in exclude)
        )
        for name in sorted(files):
            if not any(fnmatch.fnmatch(name, p) for p in include):
                continue
            path = Path(root) / name
            try:
                if path.stat().st_size > _MAX_FILE_SIZE:
                    logger.debug("Skipping %s: larger than %d bytes", path, _MAX_FILE_SIZE)
                    continue
            except OSError:
                continue
            yield path


def _is_excluded(
    path: Path,
    base: Path,
    exclude: tuple[str, ...],
    regexes: list[re.Pattern[str]],
) -> bool:
    try:
        relative = path.relative_to(base).as_posix()
    except ValueError:
        relative = path.as_posix()
    for pattern in exclude:
        if fnmatch.fnmatch(path.name, pattern) or fnmatch.fnmatch(relative, pattern):
            return True
    full = path.as_posix()
    return any(r.search(full) for r in regexes)
