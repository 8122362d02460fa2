"""Tracking relationship resolution for local branches."""

import logging
from dataclasses import dataclass
from typing import Optional

from .error_types import NotOnABranchError, UntrackedError
from .facade import GitFacade, HEADS_PREFIX, REMOTES_PREFIX

# Pseudo-remote name git uses for a branch tracking another local branch
LOCAL_REMOTE = "."


@dataclass(frozen=True)
class TrackingRelationship:
    """A (branch, remote, remote branch) triple stored in git configuration."""
    branch: str
    remote: str
    remote_branch: str

    @property
    def local_ref(self) -> str:
        return f"{HEADS_PREFIX}{self.branch}"

    @property
    def remote_ref(self) -> str:
        """Fully qualified ref of the remote-tracking branch."""
        if self.remote == LOCAL_REMOTE:
            return f"{HEADS_PREFIX}{self.remote_branch}"
        return f"{REMOTES_PREFIX}{self.remote}/{self.remote_branch}"

    @property
    def merge_value(self) -> str:
        """Value stored under ``branch.<name>.merge``."""
        return f"{HEADS_PREFIX}{self.remote_branch}"

    def __str__(self) -> str:
        if self.remote == LOCAL_REMOTE:
            return self.remote_branch
        return f"{self.remote}/{self.remote_branch}"


def remote_config_key(branch: str) -> str:
    return f"branch.{branch}.remote"


def merge_config_key(branch: str) -> str:
    return f"branch.{branch}.merge"


def strip_ref_namespace(value: str) -> str:
    """Turn a possibly fully qualified branch ref into its short name."""
    if value.startswith(HEADS_PREFIX):
        return value[len(HEADS_PREFIX):]
    return value


def resolve_tracking(git: GitFacade, branch: str) -> Optional[TrackingRelationship]:
    """
    Resolve which remote branch a local branch tracks.

    A branch with neither key set is untracked. A branch with only one of the
    two keys set is also reported as untracked, with a warning, since half a
    relationship cannot be trusted.

    Args:
        git: Facade for the repository
        branch: Short name of the local branch

    Returns:
        TrackingRelationship, or None when the branch is untracked
    """
    logger = logging.getLogger('branchsync.git_sync.branch_utils')

    remote = git.get_config(remote_config_key(branch))
    merge = git.get_config(merge_config_key(branch))

    if not remote and not merge:
        return None

    if not remote or not merge:
        logger.warning(
            f"Branch '{branch}' has a partial tracking configuration "
            f"(remote={remote!r}, merge={merge!r}); treating it as untracked"
        )
        return None

    return TrackingRelationship(branch=branch, remote=remote, remote_branch=strip_ref_namespace(merge))


def require_tracking(git: GitFacade, branch: str) -> TrackingRelationship:
    """Resolve a tracking relationship, raising UntrackedError when there is none."""
    tracking = resolve_tracking(git, branch)
    if tracking is None:
        raise UntrackedError(
            branch,
            f"Branch '{branch}' does not track a remote branch; "
            f"run 'branchsync track <remote> {branch}' to set it up"
        )
    return tracking


def require_current_branch(git: GitFacade) -> str:
    """Return the checked-out branch, raising NotOnABranchError when HEAD is detached."""
    branch = git.current_branch()
    if not branch:
        raise NotOnABranchError("HEAD is detached; check out a branch first")
    return branch


def check_local_branch_exists(git: GitFacade, branch: str) -> bool:
    """Check if a branch exists in the local repository."""
    return git.ref_exists(f"{HEADS_PREFIX}{branch}")


def check_remote_configured(git: GitFacade, remote: str) -> bool:
    """Check if a remote has a URL configured."""
    if remote == LOCAL_REMOTE:
        return True
    return bool(git.get_config(f"remote.{remote}.url"))
