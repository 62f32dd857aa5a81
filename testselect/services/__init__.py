"""Version control access."""
from testselect.services.change_set import DIFF_STEPS, ChangeSetResolver, DiffAcquisitionError
from testselect.services.git_provider import (
    GitCommandError,
    GitProvider,
    Repository,
    VersionControlProvider,
)

__all__ = [
    "DIFF_STEPS",
    "ChangeSetResolver",
    "DiffAcquisitionError",
    "GitCommandError",
    "GitProvider",
    "Repository",
    "VersionControlProvider",
]
