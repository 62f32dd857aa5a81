from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

ROOT_KEY = "testsuites"
ALLOWED_ROOT_KEYS = frozenset({ROOT_KEY})
ALLOWED_SUITE_KEYS = frozenset({"name", "run_if_changed", "tests"})
ALLOWED_TEST_KEYS = frozenset({"name", "upstream"})


class ConfigParseError(ValueError):
    """Raised when the test suite mapping document is malformed or has unknown fields."""


@dataclass(frozen=True)
class Test:
    __test__ = False

    name: str
    upstream: bool = False


@dataclass(frozen=True)
class TestSuite:
    __test__ = False

    name: str
    run_if_changed: tuple[str, ...] = ()
    tests: tuple[Test, ...] = ()

    @property
    def is_unconditional(self) -> bool:
        return not self.run_if_changed

    @property
    def test_names(self) -> tuple[str, ...]:
        return tuple(test.name for test in self.tests)


@dataclass(frozen=True)
class TestSuites:
    __test__ = False

    suites: tuple[TestSuite, ...] = field(default_factory=tuple)

    def __iter__(self):
        return iter(self.suites)

    def __len__(self) -> int:
        return len(self.suites)

    def test_names(self) -> list[str]:
        return sorted({test.name for suite in self.suites for test in suite.tests})


class _StrictSafeLoader(yaml.SafeLoader):
    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[Any, Any]:
        self.flatten_mapping(node)
        seen: set[Hashable] = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if not isinstance(key, Hashable):
                continue
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping",
                    node.start_mark,
                    f"found duplicate key {key!r}",
                    key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def _qualified_key(context: str, key: str) -> str:
    return f"{context}.{key}" if context else key


def _reject_unknown_keys(source: dict[Any, Any], allowed: frozenset[str], *, context: str) -> None:
    unknown = sorted(str(key) for key in source if key not in allowed)
    if unknown:
        allowed_text = ", ".join(sorted(allowed))
        raise ConfigParseError(
            f"{_qualified_key(context, unknown[0])} is not a known field. "
            f"Allowed: {allowed_text}"
        )


def _expect_mapping(value: Any, *, context: str) -> dict[Any, Any]:
    if not isinstance(value, dict):
        raise ConfigParseError(f"{context} must be a mapping.")
    return value


def _expect_list(source: dict[Any, Any], key: str, *, context: str = "") -> list[Any]:
    value = source.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigParseError(f"{_qualified_key(context, key)} must be a list.")
    return value


def _as_string(value: Any, *, context: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ConfigParseError(f"{context} must be a string.")
    return str(value)


def _parse_test(raw: Any, *, context: str) -> Test:
    source = _expect_mapping(raw, context=context)
    _reject_unknown_keys(source, ALLOWED_TEST_KEYS, context=context)
    upstream = source.get("upstream")
    if upstream is None:
        upstream = False
    if not isinstance(upstream, bool):
        raise ConfigParseError(f"{context}.upstream must be a boolean.")
    return Test(
        name=_as_string(source.get("name"), context=f"{context}.name"),
        upstream=upstream,
    )


def _parse_suite(raw: Any, *, context: str) -> TestSuite:
    source = _expect_mapping(raw, context=context)
    _reject_unknown_keys(source, ALLOWED_SUITE_KEYS, context=context)
    patterns = tuple(
        _as_string(pattern, context=f"{context}.run_if_changed[{index}]")
        for index, pattern in enumerate(_expect_list(source, "run_if_changed", context=context))
    )
    tests = tuple(
        _parse_test(item, context=f"{context}.tests[{index}]")
        for index, item in enumerate(_expect_list(source, "tests", context=context))
    )
    return TestSuite(
        name=_as_string(source.get("name"), context=f"{context}.name"),
        run_if_changed=patterns,
        tests=tests,
    )


def parse_test_suites(document: str | bytes) -> TestSuites:
    try:
        raw = yaml.load(document, Loader=_StrictSafeLoader)
    except yaml.YAMLError as exc:
        raise ConfigParseError(f"test suites document must be valid YAML: {exc}") from exc

    if raw is None:
        return TestSuites()
    root = _expect_mapping(raw, context="test suites root")
    _reject_unknown_keys(root, ALLOWED_ROOT_KEYS, context="")

    return TestSuites(
        suites=tuple(
            _parse_suite(item, context=f"{ROOT_KEY}[{index}]")
            for index, item in enumerate(_expect_list(root, ROOT_KEY))
        )
    )


def load_test_suites(file_path: Path) -> TestSuites:
    try:
        document = Path(file_path).read_bytes()
    except FileNotFoundError as exc:
        raise ConfigParseError(f"test suites file not found: {file_path}") from exc
    except OSError as exc:
        raise ConfigParseError(f"test suites file could not be read: {file_path}: {exc}") from exc
    return parse_test_suites(document)
