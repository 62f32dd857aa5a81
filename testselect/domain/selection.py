from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Final

from testselect.domain.suites import TestSuite, TestSuites

ALL_TESTS: Final[str] = "All"
ALL_RESULT: Final[tuple[str, ...]] = (ALL_TESTS,)

MODE_REDUCED: Final[str] = "reduced"
MODE_EMPTY: Final[str] = "empty"
MODE_ALL: Final[str] = "all"


class PatternError(ValueError):
    """Raised when a run_if_changed pattern is not a valid regular expression."""

    def __init__(self, pattern: str, suite_name: str, reason: str) -> None:
        super().__init__(
            f"invalid run_if_changed pattern {pattern!r} in suite {suite_name!r}: {reason}"
        )
        self.pattern = pattern
        self.suite_name = suite_name


@dataclass(frozen=True)
class SelectionReport:
    tests: list[str]
    mode: str
    unmatched_path: str | None = None
    matched_suites: list[str] = field(default_factory=list)


def _compile_patterns(suites: TestSuites) -> list[tuple[TestSuite, list[re.Pattern[str]]]]:
    compiled: list[tuple[TestSuite, list[re.Pattern[str]]]] = []
    for suite in suites:
        patterns: list[re.Pattern[str]] = []
        for pattern in suite.run_if_changed:
            try:
                patterns.append(re.compile(pattern))
            except re.error as exc:
                raise PatternError(pattern, suite.name, str(exc)) from exc
        compiled.append((suite, patterns))
    return compiled


def explain_selection(suites: TestSuites, changed_paths: Sequence[str]) -> SelectionReport:
    """Select the tests covering ``changed_paths`` and describe how they were chosen.

    Every path is checked against every pattern of every suite. A single path
    that matches nothing turns the whole result into ``["All"]``. When the
    matched set is non-empty, tests of suites without patterns are added too.
    """
    if not changed_paths:
        return SelectionReport(tests=[], mode=MODE_EMPTY)

    compiled = _compile_patterns(suites)
    selected: set[str] = set()
    matched_suites: set[str] = set()

    for path in changed_paths:
        match_any = False
        for suite, patterns in compiled:
            for pattern in patterns:
                if pattern.search(path) is None:
                    continue
                match_any = True
                matched_suites.add(suite.name)
                selected.update(suite.test_names)
        if not match_any:
            return SelectionReport(
                tests=list(ALL_RESULT),
                mode=MODE_ALL,
                unmatched_path=path,
            )

    # Unconditional suites only ride along with a non-empty plan.
    if selected:
        for suite, _ in compiled:
            if suite.is_unconditional:
                selected.update(suite.test_names)

    return SelectionReport(
        tests=sorted(selected),
        mode=MODE_REDUCED if selected else MODE_EMPTY,
        matched_suites=sorted(matched_suites),
    )


def select_tests(suites: TestSuites, changed_paths: Sequence[str]) -> list[str]:
    return explain_selection(suites, changed_paths).tests
