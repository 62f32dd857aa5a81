from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable, Sequence
from pathlib import Path

from testselect.domain.clone_refs import (
    CloneRefs,
    RevisionInfoParseError,
    load_clone_refs,
    parse_clone_refs,
)
from testselect.domain.selection import PatternError
from testselect.domain.suites import ConfigParseError, TestSuites, load_test_suites
from testselect.logging_utils import log_event, redact_sensitive_text, setup_logging
from testselect.observability import events
from testselect.services.change_set import ChangeSetResolver, DiffAcquisitionError
from testselect.services.git_provider import GitProvider, VersionControlProvider
from testselect.settings import Settings, SettingsError
from testselect.usecases.select_tests import SelectionOutcome, SelectTestsUseCase

CLONEREFS_ENV_VAR = "CLONEREFS_OPTIONS"


def build_git_provider(settings: Settings, logger: logging.Logger) -> VersionControlProvider:
    return GitProvider(
        work_root=settings.git_work_root,
        clone_base_url=settings.git_clone_base_url,
        git_binary=settings.git_binary,
        user_name=settings.git_user_name,
        user_email=settings.git_user_email,
        logger=logger,
    )


def load_revision_info(clonerefs_file: Path, *, inline_document: str | None = None) -> CloneRefs:
    """Read clone refs from the file, or from the inline document when the file is absent."""
    if not clonerefs_file.exists() and inline_document and inline_document.strip():
        return parse_clone_refs(inline_document)
    return load_clone_refs(clonerefs_file)


def write_test_list(output_file: Path, tests: Sequence[str]) -> None:
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text("".join(f"{test}\n" for test in tests), encoding="utf-8")


def write_json_report(output_file: Path, outcome: SelectionOutcome) -> None:
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(
        json.dumps(outcome.as_report(), ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )


def _count_tests(suites: TestSuites) -> int:
    return sum(len(suite.tests) for suite in suites)


def run_selection(
    *,
    testsuites_file: Path,
    clonerefs_file: Path,
    output_file: Path,
    json_output: Path | None = None,
    clonerefs_inline: str | None = None,
    settings_from_env: Callable[..., Settings] = Settings.from_env,
    setup_logging_fn: Callable[..., logging.Logger] = setup_logging,
    provider_factory: Callable[
        [Settings, logging.Logger], VersionControlProvider
    ] = build_git_provider,
) -> int:
    bootstrap_logger = setup_logging_fn()
    try:
        settings = settings_from_env()
    except SettingsError as exc:
        bootstrap_logger.critical(
            log_event(events.STARTUP_INVALID_CONFIG, error=redact_sensitive_text(exc))
        )
        return 1

    logger = setup_logging_fn(log_level=settings.log_level, timezone=settings.timezone)
    logger.info(
        log_event(
            events.STARTUP_READY,
            testsuites_file=str(testsuites_file),
            clonerefs_file=str(clonerefs_file),
            output_file=str(output_file),
            json_output=str(json_output) if json_output is not None else None,
        )
    )

    if clonerefs_inline is None:
        clonerefs_inline = os.getenv(CLONEREFS_ENV_VAR)
    try:
        clone_refs = load_revision_info(clonerefs_file, inline_document=clonerefs_inline)
    except RevisionInfoParseError as exc:
        logger.error(
            log_event(
                events.CLONEREFS_INVALID,
                clonerefs_file=str(clonerefs_file),
                error=redact_sensitive_text(exc),
            )
        )
        return 1
    logger.info(log_event(events.CLONEREFS_LOADED, ref_count=len(clone_refs.refs)))

    try:
        suites = load_test_suites(testsuites_file)
    except ConfigParseError as exc:
        logger.error(
            log_event(
                events.TESTSUITES_INVALID,
                testsuites_file=str(testsuites_file),
                error=str(exc),
            )
        )
        return 1
    logger.info(
        log_event(
            events.TESTSUITES_LOADED,
            suite_count=len(suites),
            test_count=_count_tests(suites),
        )
    )

    resolver = ChangeSetResolver(
        provider=provider_factory(settings, logger.getChild("git")),
        logger=logger.getChild("change_set"),
    )
    use_case = SelectTestsUseCase(
        suites=suites,
        resolver=resolver,
        logger=logger.getChild("selection"),
    )
    try:
        outcome = use_case.run(clone_refs)
    except DiffAcquisitionError as exc:
        logger.error(
            log_event(
                events.DIFF_FAILED,
                step=exc.step,
                error=redact_sensitive_text(exc),
            )
        )
        return 1
    except PatternError as exc:
        logger.error(
            log_event(
                events.SELECTION_FAILED,
                pattern=exc.pattern,
                suite=exc.suite_name,
                error=str(exc),
            )
        )
        return 1

    try:
        write_test_list(output_file, outcome.tests)
        if json_output is not None:
            write_json_report(json_output, outcome)
    except OSError as exc:
        logger.error(
            log_event(
                events.OUTPUT_WRITE_FAILED,
                output_file=str(output_file),
                error=str(exc),
            )
        )
        return 1

    logger.info(
        log_event(
            events.OUTPUT_WRITTEN,
            output_file=str(output_file),
            mode=outcome.mode,
            test_count=len(outcome.tests),
        )
    )
    return 0
