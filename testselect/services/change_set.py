from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Final

from testselect.logging_utils import log_event, redact_sensitive_text
from testselect.observability import events
from testselect.services.git_provider import Repository, VersionControlProvider

STEP_CLONE: Final[str] = "clone"
STEP_CHECKOUT: Final[str] = "checkout"
STEP_FETCH: Final[str] = "fetch"
STEP_MERGE: Final[str] = "merge"
STEP_DIFF: Final[str] = "diff"
DIFF_STEPS: Final[tuple[str, ...]] = (
    STEP_CLONE,
    STEP_CHECKOUT,
    STEP_FETCH,
    STEP_MERGE,
    STEP_DIFF,
)


class DiffAcquisitionError(RuntimeError):
    """Raised when any step of the clone/checkout/fetch/merge/diff sequence fails."""

    def __init__(
        self,
        message: str,
        *,
        step: str,
        last_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.step = step
        self.last_error = last_error


class ChangeSetResolver:
    """Computes the paths that differ once a candidate revision is merged into its base.

    The candidate is really merged, so the diff reflects the effective combined
    change rather than a comparison of two unrelated trees.
    """

    def __init__(
        self,
        *,
        provider: VersionControlProvider,
        logger: logging.Logger | None = None,
    ) -> None:
        self.provider = provider
        self.logger = logger or logging.getLogger("testselect.change_set")

    def _preparation_steps(
        self,
        repo: Repository,
        base_sha: str,
        candidate_sha: str,
    ) -> list[tuple[str, str, Callable[[], None]]]:
        provider = self.provider
        return [
            (STEP_CLONE, "", lambda: provider.clone(repo)),
            (STEP_CHECKOUT, base_sha, lambda: provider.checkout(repo, base_sha)),
            (STEP_FETCH, candidate_sha, lambda: provider.fetch(repo, candidate_sha)),
            (STEP_MERGE, candidate_sha, lambda: provider.merge(repo, candidate_sha)),
        ]

    def _log_step_start(self, step: str, repo: Repository, revision: str) -> None:
        self.logger.info(
            log_event(
                events.DIFF_STEP_START,
                step=step,
                repository=repo.full_name,
                revision=revision,
            )
        )

    def _fail(self, step: str, repo: Repository, exc: Exception) -> DiffAcquisitionError:
        error_text = redact_sensitive_text(exc)
        self.logger.error(
            log_event(
                events.DIFF_STEP_FAILED,
                step=step,
                repository=repo.full_name,
                error=error_text,
            )
        )
        return DiffAcquisitionError(
            f"{step} failed for {repo.full_name}: {error_text}",
            step=step,
            last_error=exc,
        )

    def resolve(self, repo: Repository, base_sha: str, candidate_sha: str) -> list[str]:
        for step, revision, action in self._preparation_steps(repo, base_sha, candidate_sha):
            self._log_step_start(step, repo, revision)
            try:
                action()
            except Exception as exc:
                raise self._fail(step, repo, exc) from exc

        self._log_step_start(STEP_DIFF, repo, base_sha)
        try:
            paths = list(self.provider.diff_name_only(repo, base_sha))
        except Exception as exc:
            raise self._fail(STEP_DIFF, repo, exc) from exc

        self.logger.info(
            log_event(
                events.DIFF_COMPLETE,
                repository=repo.full_name,
                base_sha=base_sha,
                candidate_sha=candidate_sha,
                path_count=len(paths),
            )
        )
        return paths
