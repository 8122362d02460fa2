"""Command-level entry points over the branch synchronization core."""

import logging
from typing import Optional

from ..config import Config, PolicyConfig
from .branch_utils import require_current_branch
from .error_types import GitSyncError
from .facade import GitFacade, GitPythonFacade
from .performance_logger import get_performance_logger
from .repository_sync import synchronize_branch
from .status import collect_branch_status, format_branch_report
from .upstream_tracking import provision_tracking, split_remote_branch
from .utils import GitSyncResult, create_git_sync_result, result_from_error


class BranchSyncManager:
    """
    Runs the status, sync, fast-forward and track commands against one repository.

    Every command returns a GitSyncResult; failures raised by the core are
    converted into results carrying the error code, exit status and
    resolution steps for that error category.
    """

    def __init__(self, config: Config, git: Optional[GitFacade] = None):
        """
        Initialize BranchSyncManager with configuration.

        Args:
            config: branchsync configuration
            git: Facade to use instead of opening ``config.repo_dir`` with GitPython

        Raises:
            NotARepositoryError: ``config.repo_dir`` is not inside a git repository
        """
        self.config = config
        self.logger = logging.getLogger('branchsync.git_sync')
        self.perf_logger = get_performance_logger()
        self.git = git if git is not None else GitPythonFacade(config.repo_dir)

    def status(self, policy: PolicyConfig) -> GitSyncResult:
        """Report the tracking status of every local branch."""
        try:
            with self.perf_logger.time_operation("status", {"fetch": policy.do_fetch, "pull": policy.do_pull}):
                reports = collect_branch_status(self.git, policy)
        except GitSyncError as e:
            self.logger.error(f"status failed: {e.message}")
            return result_from_error(e, "status")

        lines = format_branch_report(reports, color=self.config.color)
        return create_git_sync_result(
            success=True,
            message="\n".join(lines),
            operation="status",
            details={"branches": [report.to_dict() for report in reports]}
        )

    def sync(self, policy: PolicyConfig, branch: Optional[str] = None) -> GitSyncResult:
        """Bring a branch up to date, rebasing or merging when it has diverged."""
        return self._synchronize("sync", policy, branch)

    def fast_forward(self, policy: PolicyConfig, branch: Optional[str] = None) -> GitSyncResult:
        """Bring a branch up to date without ever merging or rebasing."""
        return self._synchronize("ffwd", policy.replace(fast_forward_only=True), branch)

    def _synchronize(self, operation: str, policy: PolicyConfig, branch: Optional[str]) -> GitSyncResult:
        try:
            with self.perf_logger.time_operation(operation, {"branch": branch or "HEAD"}):
                outcome = synchronize_branch(self.git, policy, branch)
        except GitSyncError as e:
            self.logger.error(f"{operation} failed: {e.message}")
            return result_from_error(e, operation, branch_used=branch)

        details = {
            "tracking": str(outcome.tracking),
            "ahead": outcome.summary.ahead_count,
            "behind": outcome.summary.behind_count,
            "local_merge_commits": outcome.summary.has_local_merge_commits,
        }
        if outcome.after is not None:
            details["ahead_after"] = outcome.after.ahead_count
            details["behind_after"] = outcome.after.behind_count

        return create_git_sync_result(
            success=True,
            message=outcome.message,
            operation=operation,
            branch_used=outcome.branch,
            decision=outcome.decision.value,
            details=details
        )

    def track(
        self,
        remote: Optional[str] = None,
        branch: Optional[str] = None,
        remote_branch: Optional[str] = None,
        start_point: Optional[str] = None,
        replace: bool = False,
        marker_commit: bool = False
    ) -> GitSyncResult:
        """
        Provision a tracking relationship.

        ``remote`` may also be given as ``<remote>/<branch>``; a missing branch
        defaults to the checked-out one and a missing remote to the configured
        default remote.
        """
        try:
            with self.perf_logger.time_operation("track", {"remote": remote, "branch": branch}):
                if remote and branch is None:
                    split_remote, split_branch = split_remote_branch(self.git, remote)
                    if split_remote is not None:
                        remote, branch = split_remote, split_branch

                remote = remote or self.config.default_remote
                branch = branch or require_current_branch(self.git)

                provisioned = provision_tracking(
                    self.git,
                    remote,
                    branch,
                    start_point,
                    remote_branch=remote_branch,
                    replace=replace,
                    marker_commit=marker_commit
                )
        except GitSyncError as e:
            self.logger.error(f"track failed: {e.message}")
            return result_from_error(e, "track", branch_used=branch)

        messages = {
            "already_tracking": f"Branch '{branch}' already tracks {provisioned.tracking}",
            "adopted": f"Branch '{branch}' now tracks {provisioned.tracking}",
            "replaced": f"Branch '{branch}' reset to {provisioned.tracking} and tracking it",
            "created": f"Created branch '{branch}' from {provisioned.from_ref}, tracking {provisioned.tracking}",
        }
        details = {
            "created": provisioned.created,
            "from": provisioned.from_ref,
            "action": provisioned.action.value,
            "tracking": str(provisioned.tracking),
        }
        if provisioned.marker_commit:
            details["marker_commit"] = provisioned.marker_commit

        return create_git_sync_result(
            success=True,
            message=messages[provisioned.action.value],
            operation="track",
            branch_used=branch,
            details=details
        )
