"""Apply sync decisions to a branch: the pull and fast-forward commands."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, Optional

from ..config import PolicyConfig
from .branch_utils import LOCAL_REMOTE, TrackingRelationship, require_current_branch, require_tracking
from .decision import SyncDecision, decide
from .error_types import (
    DivergedError,
    GitSyncError,
    MergeConflictError,
    NotOnABranchError,
    RemoteRefMissingError,
    UntrackedError,
)
from .facade import GitFacade
from .relationship import RelationshipSummary, analyze_tracking

STASH_LABEL = "branchsync: auto-stash"


@dataclass
class SyncOutcome:
    """What a synchronization did to one branch."""
    branch: str
    tracking: TrackingRelationship
    summary: RelationshipSummary
    decision: SyncDecision
    message: str
    after: Optional[RelationshipSummary] = None


@contextmanager
def stash_wrapped(git: GitFacade, enabled: bool, logger: logging.Logger,
                  label: str = STASH_LABEL) -> Generator[bool, None, None]:
    """
    Stash uncommitted edits before the wrapped block and restore them after.

    The stash is restored whether or not the block succeeded, except after a
    merge conflict: popping onto a conflicted tree would make things worse, so
    the entry is kept and the user is told about it.

    Yields:
        True if anything was stashed
    """
    stashed = False
    if enabled:
        stashed = git.stash_save(label)
        if stashed:
            logger.info("Stashed uncommitted edits")
        else:
            logger.debug("Nothing to stash")

    try:
        yield stashed
    except MergeConflictError:
        if stashed:
            logger.warning(f"Uncommitted edits remain in the stash ('{label}'); run 'git stash pop' after resolving")
        raise
    except BaseException:
        if stashed:
            try:
                git.stash_pop()
            except GitSyncError as pop_error:
                logger.error(f"Restoring stashed edits failed ({pop_error.message}); "
                             f"they remain in the stash ('{label}')")
        raise

    if stashed:
        git.stash_pop()
        logger.info("Restored stashed edits")


def fetch_tracking(git: GitFacade, tracking: TrackingRelationship, logger: logging.Logger) -> None:
    """Fetch the single remote branch a relationship points at."""
    if tracking.remote == LOCAL_REMOTE:
        logger.debug(f"{tracking.branch} tracks a local branch; nothing to fetch")
        return
    refspec = f"+refs/heads/{tracking.remote_branch}:{tracking.remote_ref}"
    logger.info(f"Fetching {tracking}")
    git.fetch(tracking.remote, refspec)


def apply_decision(git: GitFacade, decision: SyncDecision, tracking: TrackingRelationship,
                   summary: RelationshipSummary, logger: logging.Logger) -> str:
    """
    Carry out a decision on the checked-out branch.

    Returns:
        Human-readable description of what happened

    Raises:
        DivergedError: decision was DIVERGED_ABORT
        RemoteRefMissingError: decision was NON_EXISTENT_REMOTE_REF
        UntrackedError: decision was UNTRACKED
    """
    branch = tracking.branch
    target = tracking.remote_ref

    if decision is SyncDecision.UP_TO_DATE:
        if summary.ahead_count:
            return f"{branch} is up to date with {tracking} ({summary.ahead_count} commit(s) ahead)"
        return f"{branch} is up to date with {tracking}"

    if decision is SyncDecision.FAST_FORWARD:
        logger.info(f"Fast-forwarding {branch} by {summary.behind_count} commit(s)")
        git.merge_fast_forward_only(target)
        return f"Fast-forwarded {branch} to {tracking} ({summary.behind_count} new commit(s))"

    if decision is SyncDecision.REBASE:
        logger.info(f"Rebasing {summary.ahead_count} local commit(s) of {branch} onto {tracking}")
        git.rebase(target)
        return f"Rebased {summary.ahead_count} local commit(s) of {branch} onto {tracking}"

    if decision is SyncDecision.MERGE:
        reason = "local history contains merges" if summary.has_local_merge_commits else "merge preferred"
        logger.info(f"Merging {tracking} into {branch} ({reason})")
        git.merge(target)
        return f"Merged {tracking} into {branch} ({reason})"

    if decision is SyncDecision.DIVERGED_ABORT:
        raise DivergedError(branch, str(tracking), summary.ahead_count, summary.behind_count)

    if decision is SyncDecision.NON_EXISTENT_REMOTE_REF:
        raise RemoteRefMissingError(
            target,
            f"{branch} tracks {tracking}, but {target} does not exist; fetch it or push the branch"
        )

    raise UntrackedError(branch)


def synchronize_branch(git: GitFacade, policy: PolicyConfig, branch: Optional[str] = None) -> SyncOutcome:
    """
    Bring a branch up to date with the remote branch it tracks.

    The branch defaults to the checked-out one. When another branch is named it
    is checked out for the update and the original branch is checked out again
    afterwards; a detached HEAD is detached again at the same commit. With ``policy.fast_forward_only`` a diverged branch is reported
    instead of being rebased or merged.

    Args:
        git: Facade for the repository
        policy: Synchronization policy for this invocation
        branch: Optional branch to synchronize instead of the current one

    Returns:
        SyncOutcome describing the decision and its effect
    """
    logger = logging.getLogger('branchsync.git_sync.repository_sync')

    current = require_current_branch(git) if branch is None else git.current_branch()
    target_branch = branch or current
    tracking = require_tracking(git, target_branch)

    if policy.do_fetch:
        fetch_tracking(git, tracking, logger)

    summary = analyze_tracking(git, tracking)
    decision = decide(summary, policy)
    logger.debug(f"Decision for {target_branch}: {decision.name} ({summary})")

    mutating = decision in (SyncDecision.FAST_FORWARD, SyncDecision.REBASE, SyncDecision.MERGE)
    switch = mutating and current != target_branch

    # A detached HEAD is returned to by commit id.
    return_to = current if current is not None else git.resolve_ref("HEAD")
    if switch and return_to is None:
        raise NotOnABranchError(f"Cannot switch to '{target_branch}': HEAD does not point at a commit")

    with stash_wrapped(git, policy.do_stash and mutating, logger):
        if switch:
            git.checkout(target_branch)
        try:
            message = apply_decision(git, decision, tracking, summary, logger)
        except MergeConflictError:
            # Stay on the conflicted branch so it can be resolved in place.
            raise
        except BaseException:
            if switch:
                git.checkout(return_to)
            raise
        if switch:
            logger.debug(f"Returning to {return_to}")
            git.checkout(return_to)

    after = analyze_tracking(git, tracking) if mutating else None

    return SyncOutcome(
        branch=target_branch,
        tracking=tracking,
        summary=summary,
        decision=decision,
        message=message,
        after=after
    )
