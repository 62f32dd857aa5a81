from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from testselect.logging_utils import log_event, redact_sensitive_text
from testselect.observability import events

DEFAULT_CLONE_BASE_URL = "https://github.com"


class GitCommandError(RuntimeError):
    """Raised when a git invocation exits non-zero or cannot be started."""

    def __init__(
        self,
        command: Sequence[str],
        *,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        command_text = redact_sensitive_text(" ".join(command))
        detail = redact_sensitive_text(stderr.strip())
        message = f"git command failed (exit {returncode}): {command_text}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr


@dataclass(frozen=True)
class Repository:
    org: str
    repo: str
    clone_uri: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.org}/{self.repo}"


class VersionControlProvider(Protocol):
    def clone(self, repo: Repository) -> None: ...

    def checkout(self, repo: Repository, revision: str) -> None: ...

    def fetch(self, repo: Repository, revision: str) -> None: ...

    def merge(self, repo: Repository, revision: str) -> None: ...

    def diff_name_only(self, repo: Repository, base_revision: str) -> list[str]: ...


CommandRunner = Callable[..., "subprocess.CompletedProcess[str]"]


class GitProvider:
    def __init__(
        self,
        *,
        work_root: Path,
        clone_base_url: str = DEFAULT_CLONE_BASE_URL,
        git_binary: str = "git",
        user_name: str = "testselect",
        user_email: str = "testselect@localhost",
        runner: CommandRunner = subprocess.run,
        logger: logging.Logger | None = None,
    ) -> None:
        self.work_root = Path(work_root)
        self.clone_base_url = clone_base_url.rstrip("/")
        self.git_binary = git_binary
        self.user_name = user_name
        self.user_email = user_email
        self.runner = runner
        self.logger = logger or logging.getLogger("testselect.git")

    def repository_dir(self, repo: Repository) -> Path:
        return self.work_root / repo.org / repo.repo

    def clone_url(self, repo: Repository) -> str:
        if repo.clone_uri:
            return repo.clone_uri
        return f"{self.clone_base_url}/{repo.org}/{repo.repo}.git"

    def _run(self, args: Sequence[str], *, cwd: Path | None = None) -> str:
        command = [self.git_binary, *args]
        try:
            result = self.runner(
                command,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=True,
                text=True,
                encoding="utf-8",
                check=False,
            )
        except OSError as exc:
            raise GitCommandError(command, stderr=str(exc)) from exc
        if result.returncode != 0:
            raise GitCommandError(
                command,
                returncode=result.returncode,
                stderr=result.stderr or "",
            )
        return result.stdout or ""

    def clone(self, repo: Repository) -> None:
        target = self.repository_dir(repo)
        if target.exists():
            shutil.rmtree(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        self._run(["clone", self.clone_url(repo), str(target)])

    def checkout(self, repo: Repository, revision: str) -> None:
        self._run(["checkout", "--quiet", revision], cwd=self.repository_dir(repo))

    def fetch(self, repo: Repository, revision: str) -> None:
        self._run(["fetch", "--quiet", "origin", revision], cwd=self.repository_dir(repo))

    def merge(self, repo: Repository, revision: str) -> None:
        cwd = self.repository_dir(repo)
        try:
            self._run(
                [
                    "-c",
                    f"user.name={self.user_name}",
                    "-c",
                    f"user.email={self.user_email}",
                    "merge",
                    "--no-ff",
                    "--no-edit",
                    revision,
                ],
                cwd=cwd,
            )
        except GitCommandError:
            self._abort_merge(repo)
            raise

    def _abort_merge(self, repo: Repository) -> None:
        try:
            self._run(["merge", "--abort"], cwd=self.repository_dir(repo))
        except GitCommandError as exc:
            self.logger.warning(
                log_event(
                    events.GIT_MERGE_ABORT_FAILED,
                    repository=repo.full_name,
                    error=str(exc),
                )
            )

    def diff_name_only(self, repo: Repository, base_revision: str) -> list[str]:
        output = self._run(
            ["-c", "core.quotePath=false", "diff", "--name-only", "-z", base_revision],
            cwd=self.repository_dir(repo),
        )
        # NUL-separated; names may carry spaces or newlines of their own.
        return [path for path in output.split("\0") if path]
