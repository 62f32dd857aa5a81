from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any


class RevisionInfoParseError(ValueError):
    """Raised when the clone refs (revision info) document is malformed."""


@dataclass(frozen=True)
class RevisionTarget:
    org: str
    repo: str
    base_sha: str
    candidate_sha: str
    clone_uri: str | None = None


@dataclass(frozen=True)
class PullRef:
    number: int = 0
    author: str = ""
    sha: str = ""
    ref: str = ""
    title: str = ""


@dataclass(frozen=True)
class GitRef:
    org: str
    repo: str
    base_ref: str = ""
    base_sha: str = ""
    pulls: tuple[PullRef, ...] = ()
    clone_uri: str | None = None


@dataclass(frozen=True)
class CloneRefs:
    refs: tuple[GitRef, ...] = ()

    def primary_target(self) -> RevisionTarget | None:
        # Only the first ref and its first pull are consulted.
        if not self.refs or not self.refs[0].pulls:
            return None
        ref = self.refs[0]
        return RevisionTarget(
            org=ref.org,
            repo=ref.repo,
            base_sha=ref.base_sha,
            candidate_sha=ref.pulls[0].sha,
            clone_uri=ref.clone_uri,
        )


def _qualified_key(context: str, key: str) -> str:
    return f"{context}.{key}" if context else key


def _expect_object(value: Any, *, context: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise RevisionInfoParseError(f"{context} must be a JSON object.")
    return value


def _optional_list(source: dict[str, Any], key: str, *, context: str = "") -> list[Any]:
    value = source.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise RevisionInfoParseError(f"{_qualified_key(context, key)} must be a JSON array.")
    return value


def _optional_string(source: dict[str, Any], key: str, *, context: str) -> str:
    value = source.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise RevisionInfoParseError(f"{_qualified_key(context, key)} must be a string.")
    return value


def _optional_int(source: dict[str, Any], key: str, *, context: str) -> int:
    value = source.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise RevisionInfoParseError(f"{_qualified_key(context, key)} must be an integer.")
    return value


def _parse_pull(raw: Any, *, context: str) -> PullRef:
    source = _expect_object(raw, context=context)
    return PullRef(
        number=_optional_int(source, "number", context=context),
        author=_optional_string(source, "author", context=context),
        sha=_optional_string(source, "sha", context=context),
        ref=_optional_string(source, "ref", context=context),
        title=_optional_string(source, "title", context=context),
    )


def _parse_ref(raw: Any, *, context: str) -> GitRef:
    source = _expect_object(raw, context=context)
    pulls = tuple(
        _parse_pull(item, context=f"{context}.pulls[{index}]")
        for index, item in enumerate(_optional_list(source, "pulls", context=context))
    )
    clone_uri = _optional_string(source, "clone_uri", context=context)
    return GitRef(
        org=_optional_string(source, "org", context=context),
        repo=_optional_string(source, "repo", context=context),
        base_ref=_optional_string(source, "base_ref", context=context),
        base_sha=_optional_string(source, "base_sha", context=context),
        pulls=pulls,
        clone_uri=clone_uri or None,
    )


def parse_clone_refs(document: str | bytes) -> CloneRefs:
    try:
        raw = json.loads(document)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise RevisionInfoParseError(f"clone refs document must be valid JSON: {exc}") from exc

    source = _expect_object(raw, context="clone refs root")
    return CloneRefs(
        refs=tuple(
            _parse_ref(item, context=f"refs[{index}]")
            for index, item in enumerate(_optional_list(source, "refs"))
        )
    )


def load_clone_refs(file_path: Path) -> CloneRefs:
    try:
        document = Path(file_path).read_bytes()
    except FileNotFoundError as exc:
        raise RevisionInfoParseError(f"clone refs file not found: {file_path}") from exc
    except OSError as exc:
        raise RevisionInfoParseError(
            f"clone refs file could not be read: {file_path}: {exc}"
        ) from exc
    return parse_clone_refs(document)
