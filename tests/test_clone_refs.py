from __future__ import annotations

import json
from pathlib import Path

import pytest

from testselect.domain.clone_refs import (
    CloneRefs,
    RevisionInfoParseError,
    RevisionTarget,
    load_clone_refs,
    parse_clone_refs,
)
from tests.selection_test_harness import clone_refs_payload, write_json


def test_parse_clone_refs_ignores_unknown_fields_and_reads_refs() -> None:
    refs = parse_clone_refs(json.dumps(clone_refs_payload()))

    assert len(refs.refs) == 1
    ref = refs.refs[0]
    assert (ref.org, ref.repo, ref.base_ref, ref.base_sha) == (
        "knative",
        "serving",
        "main",
        "base123",
    )
    assert ref.pulls[0].number == 1
    assert ref.pulls[0].sha == "head456"


def test_primary_target_uses_first_ref_and_first_pull() -> None:
    payload = clone_refs_payload(pull_shas=["first", "second"])
    payload["refs"].append(  # type: ignore[union-attr]
        {"org": "other", "repo": "repo", "base_sha": "zzz", "pulls": [{"sha": "yyy"}]}
    )

    target = parse_clone_refs(json.dumps(payload)).primary_target()

    assert target == RevisionTarget(
        org="knative",
        repo="serving",
        base_sha="base123",
        candidate_sha="first",
    )


def test_primary_target_carries_clone_uri_override() -> None:
    payload = clone_refs_payload()
    payload["refs"][0]["clone_uri"] = "https://mirror.example/knative/serving.git"  # type: ignore[index]

    target = parse_clone_refs(json.dumps(payload)).primary_target()

    assert target is not None
    assert target.clone_uri == "https://mirror.example/knative/serving.git"


@pytest.mark.parametrize(
    "document",
    [
        "{}",
        '{"refs": []}',
        '{"refs": null}',
        json.dumps(clone_refs_payload(pull_shas=[])),
    ],
)
def test_primary_target_is_none_without_candidate_revision(document: str) -> None:
    assert parse_clone_refs(document).primary_target() is None


def test_empty_clone_refs_has_no_target() -> None:
    assert CloneRefs().primary_target() is None


@pytest.mark.parametrize(
    ("document", "message"),
    [
        ("not json", "valid JSON"),
        ("[]", "root must be a JSON object"),
        ('{"refs": {}}', "refs must be a JSON array"),
        ('{"refs": ["knative/serving"]}', r"refs\[0\] must be a JSON object"),
        ('{"refs": [{"org": 1}]}', r"refs\[0\]\.org must be a string"),
        ('{"refs": [{"pulls": [{"number": "7"}]}]}', r"pulls\[0\]\.number must be an integer"),
        ('{"refs": [{"pulls": {"sha": "x"}}]}', r"refs\[0\]\.pulls must be a JSON array"),
    ],
)
def test_parse_clone_refs_rejects_malformed_documents(document: str, message: str) -> None:
    with pytest.raises(RevisionInfoParseError, match=message):
        parse_clone_refs(document)


def test_load_clone_refs_reads_file(tmp_path: Path) -> None:
    path = write_json(tmp_path / "clonerefs.json", clone_refs_payload(base_sha="abc"))

    assert load_clone_refs(path).refs[0].base_sha == "abc"


def test_load_clone_refs_missing_file(tmp_path: Path) -> None:
    with pytest.raises(RevisionInfoParseError, match="not found"):
        load_clone_refs(tmp_path / "missing.json")
