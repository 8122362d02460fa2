"""Resolution guidance for each branch synchronization error category."""

from typing import Dict
from .error_types import ErrorCategory, ErrorResolution, RecoveryAction


def build_error_strategies() -> Dict[ErrorCategory, ErrorResolution]:
    """Build resolution guidance for each error category."""
    return {
        ErrorCategory.NOT_A_REPOSITORY: ErrorResolution(
            category=ErrorCategory.NOT_A_REPOSITORY,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="Not inside a git repository",
            resolution_steps=[
                "Run the command from inside a git working tree",
                "Or point it at one with '-C <path>' or BRANCHSYNC_REPO_DIR"
            ]
        ),

        ErrorCategory.NOT_ON_A_BRANCH: ErrorResolution(
            category=ErrorCategory.NOT_ON_A_BRANCH,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="HEAD is detached, there is no current branch to synchronize",
            resolution_steps=[
                "Check out a branch with 'git checkout <branch>'",
                "Or name the branch explicitly on the command line"
            ]
        ),

        ErrorCategory.UNTRACKED: ErrorResolution(
            category=ErrorCategory.UNTRACKED,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="The branch does not track a remote branch",
            resolution_steps=[
                "Set up tracking with 'branchsync track <remote> <branch>'",
                "Inspect 'git config --get-regexp ^branch\\.' for half-configured entries"
            ]
        ),

        ErrorCategory.CONFIG_QUERY_FAILED: ErrorResolution(
            category=ErrorCategory.CONFIG_QUERY_FAILED,
            action=RecoveryAction.ABORT,
            user_message="Reading git configuration failed unexpectedly",
            resolution_steps=[
                "Run 'git config --list' to check that the configuration parses",
                "Look for duplicate or malformed keys in .git/config"
            ]
        ),

        ErrorCategory.REMOTE_UNKNOWN: ErrorResolution(
            category=ErrorCategory.REMOTE_UNKNOWN,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="The remote is not configured in this repository",
            resolution_steps=[
                "List configured remotes with 'git remote -v'",
                "Add the remote with 'git remote add <name> <url>'"
            ]
        ),

        ErrorCategory.REMOTE_REF_MISSING: ErrorResolution(
            category=ErrorCategory.REMOTE_REF_MISSING,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="The remote-tracking branch does not exist locally",
            resolution_steps=[
                "Fetch the remote with 'git fetch <remote>' or pass --fetch",
                "Check the branch name with 'git branch -r'",
                "Push the branch first if it only exists locally"
            ]
        ),

        ErrorCategory.TRACKING_CONFLICT: ErrorResolution(
            category=ErrorCategory.TRACKING_CONFLICT,
            action=RecoveryAction.ABORT,
            user_message="The branch already tracks a different remote branch",
            resolution_steps=[
                "Check the current relationship with 'git config --get-regexp ^branch\\.<branch>\\.'",
                "Remove it with 'git branch --unset-upstream <branch>' if it is no longer wanted"
            ]
        ),

        ErrorCategory.WOULD_LOSE_COMMITS: ErrorResolution(
            category=ErrorCategory.WOULD_LOSE_COMMITS,
            action=RecoveryAction.ABORT,
            user_message="Replacing the branch would make local commits unreachable",
            resolution_steps=[
                "Inspect the commits with 'git log <remote>/<branch>..<branch>'",
                "Push or merge them first, or track without --replace"
            ]
        ),

        ErrorCategory.DIVERGED: ErrorResolution(
            category=ErrorCategory.DIVERGED,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="Local and remote branches have diverged",
            resolution_steps=[
                "Use 'branchsync sync' to rebase or merge automatically",
                "Or rebase / merge by hand and run the command again"
            ]
        ),

        ErrorCategory.NON_FAST_FORWARD: ErrorResolution(
            category=ErrorCategory.NON_FAST_FORWARD,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="The update is not a fast-forward",
            resolution_steps=[
                "Run 'branchsync status' to see ahead / behind counts",
                "Use 'branchsync sync' to combine the histories"
            ]
        ),

        ErrorCategory.MERGE_CONFLICT: ErrorResolution(
            category=ErrorCategory.MERGE_CONFLICT,
            action=RecoveryAction.RESOLVE_CONFLICTS,
            user_message="git stopped with conflicts",
            resolution_steps=[
                "Resolve the conflicted files listed by 'git status'",
                "Continue with 'git rebase --continue' or 'git commit'",
                "Or give up with 'git rebase --abort' / 'git merge --abort'"
            ]
        ),

        ErrorCategory.SUBPROCESS_FAILED: ErrorResolution(
            category=ErrorCategory.SUBPROCESS_FAILED,
            action=RecoveryAction.ABORT,
            user_message="A git command failed",
            resolution_steps=[
                "Re-run with -v to see the failing git command"
            ]
        )
    }


_STRATEGIES = build_error_strategies()


def get_error_resolution(category: ErrorCategory) -> ErrorResolution:
    """Look up the resolution guidance for an error category."""
    return _STRATEGIES[category]
