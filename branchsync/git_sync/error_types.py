"""Error types and categorization for branch synchronization operations."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ErrorCategory(Enum):
    """Categories of sync errors, one per distinct user-actionable condition."""
    NOT_A_REPOSITORY = "not_a_repository"
    NOT_ON_A_BRANCH = "not_on_a_branch"
    UNTRACKED = "untracked"
    CONFIG_QUERY_FAILED = "config_query_failed"
    REMOTE_UNKNOWN = "remote_unknown"
    REMOTE_REF_MISSING = "remote_ref_missing"
    TRACKING_CONFLICT = "tracking_conflict"
    WOULD_LOSE_COMMITS = "would_lose_commits"
    DIVERGED = "diverged"
    NON_FAST_FORWARD = "non_fast_forward"
    MERGE_CONFLICT = "merge_conflict"
    SUBPROCESS_FAILED = "subprocess_failed"


class RecoveryAction(Enum):
    """Types of recovery actions that can be taken."""
    USER_ACTION_REQUIRED = "user_action_required"
    RESOLVE_CONFLICTS = "resolve_conflicts"
    ABORT = "abort"


@dataclass
class ErrorResolution:
    """Information about how to resolve a specific error."""
    category: ErrorCategory
    action: RecoveryAction
    user_message: str
    resolution_steps: List[str] = field(default_factory=list)


class GitSyncError(Exception):
    """
    Base class for every failure raised by the synchronization core.

    Each subclass is bound to one ErrorCategory. ``exit_status`` is the status a
    command should exit with; for failed git invocations it is git's own status.
    """

    category = ErrorCategory.SUBPROCESS_FAILED

    def __init__(self, message: str, *, exit_status: int = 1, command: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.exit_status = exit_status if exit_status else 1
        self.command = command

    @property
    def error_code(self) -> str:
        return self.category.name


class NotARepositoryError(GitSyncError):
    category = ErrorCategory.NOT_A_REPOSITORY


class NotOnABranchError(GitSyncError):
    category = ErrorCategory.NOT_ON_A_BRANCH


class UntrackedError(GitSyncError):
    category = ErrorCategory.UNTRACKED

    def __init__(self, branch: str, message: Optional[str] = None):
        super().__init__(message or f"Branch '{branch}' does not track a remote branch")
        self.branch = branch


class ConfigQueryFailedError(GitSyncError):
    category = ErrorCategory.CONFIG_QUERY_FAILED


class RemoteUnknownError(GitSyncError):
    category = ErrorCategory.REMOTE_UNKNOWN

    def __init__(self, remote: str):
        super().__init__(f"Remote '{remote}' is not configured (no remote.{remote}.url)")
        self.remote = remote


class RemoteRefMissingError(GitSyncError):
    category = ErrorCategory.REMOTE_REF_MISSING

    def __init__(self, remote_ref: str, message: Optional[str] = None):
        super().__init__(message or f"Remote branch '{remote_ref}' does not exist locally; fetch it first")
        self.remote_ref = remote_ref


class TrackingConflictError(GitSyncError):
    category = ErrorCategory.TRACKING_CONFLICT


class WouldLoseCommitsError(GitSyncError):
    category = ErrorCategory.WOULD_LOSE_COMMITS

    def __init__(self, branch: str, remote_ref: str, lost_count: int):
        super().__init__(
            f"Refusing to replace branch '{branch}': {lost_count} commit(s) on it "
            f"are not on '{remote_ref}' and would become unreachable"
        )
        self.branch = branch
        self.remote_ref = remote_ref
        self.lost_count = lost_count


class DivergedError(GitSyncError):
    category = ErrorCategory.DIVERGED

    def __init__(self, branch: str, remote_ref: str, ahead_count: int, behind_count: int):
        super().__init__(
            f"Branch '{branch}' has diverged from '{remote_ref}' "
            f"({ahead_count} ahead, {behind_count} behind); not fast-forwarding"
        )
        self.branch = branch
        self.remote_ref = remote_ref
        self.ahead_count = ahead_count
        self.behind_count = behind_count


class NonFastForwardError(GitSyncError):
    category = ErrorCategory.NON_FAST_FORWARD


class MergeConflictError(GitSyncError):
    category = ErrorCategory.MERGE_CONFLICT


class SubprocessFailedError(GitSyncError):
    category = ErrorCategory.SUBPROCESS_FAILED
