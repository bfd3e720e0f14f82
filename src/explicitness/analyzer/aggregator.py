"""Aggregator — collects violations and failures into a RunResult."""

from __future__ import annotations

from explicitness.analyzer.models import ParseFailure, RunResult, Severity, Violation


class Aggregator:
    """Single-writer collector. Order of ``record`` calls is report order."""

    def __init__(self) -> None:
        self._violations: list[Violation] = []
        self._failures: list[ParseFailure] = []
        self._files: list[str] = []

    def record(self, violation: Violation) -> None:
        self._violations.append(violation)

    def record_all(self, violations: list[Violation]) -> None:
        self._violations.extend(violations)

    def record_failure(self, failure: ParseFailure) -> None:
        self._failures.append(failure)

    def mark_analyzed(self, file: str) -> None:
        self._files.append(file)

    def finalize(self) -> RunResult:
        """Snapshot the collected state. Safe to call repeatedly."""
        counts = {severity: 0 for severity in Severity if severity is not Severity.NONE}
        max_severity = Severity.NONE
        for v in self._violations:
            counts[v.severity] += 1
            max_severity = max(max_severity, v.severity)
        return RunResult(
            violations=tuple(self._violations),
            max_severity=max_severity,
            counts=counts,
            parse_failures=tuple(self._failures),
            files_analyzed=len(self._files),
        )
