"""Ahead / behind analysis between a local branch and its remote counterpart."""

import logging
from dataclasses import dataclass

from .branch_utils import TrackingRelationship
from .facade import GitFacade


@dataclass(frozen=True)
class RelationshipSummary:
    """How two commit histories relate. Computed fresh on every call."""
    ahead_count: int = 0
    behind_count: int = 0
    has_local_merge_commits: bool = False
    remote_ref_exists: bool = True

    @property
    def is_diverged(self) -> bool:
        return self.ahead_count > 0 and self.behind_count > 0

    @property
    def is_in_sync(self) -> bool:
        return self.remote_ref_exists and self.ahead_count == 0 and self.behind_count == 0


MISSING_REMOTE = RelationshipSummary(remote_ref_exists=False)


def analyze_relationship(git: GitFacade, local_ref: str, remote_ref: str) -> RelationshipSummary:
    """
    Compute the relationship between a local ref and a remote-tracking ref.

    Counts come from commit reachability: ahead is the number of commits
    reachable from ``local_ref`` but not ``remote_ref``, behind the reverse.
    A remote ref that was never fetched short-circuits to
    ``remote_ref_exists=False`` with zero counts.

    Args:
        git: Facade for the repository
        local_ref: Fully qualified local ref, e.g. ``refs/heads/main``
        remote_ref: Fully qualified remote-tracking ref, e.g. ``refs/remotes/origin/main``

    Returns:
        RelationshipSummary for the pair
    """
    logger = logging.getLogger('branchsync.git_sync.relationship')

    if not git.ref_exists(remote_ref):
        logger.debug(f"{remote_ref} does not exist; skipping ahead/behind counts")
        return MISSING_REMOTE

    ahead = git.commits_only_in(local_ref, remote_ref)
    behind = git.commits_only_in(remote_ref, local_ref)
    has_merges = ahead > 0 and git.has_multi_parent_commit(f"{remote_ref}..{local_ref}")

    logger.debug(f"{local_ref} vs {remote_ref}: ahead={ahead} behind={behind} local_merges={has_merges}")

    return RelationshipSummary(
        ahead_count=ahead,
        behind_count=behind,
        has_local_merge_commits=has_merges,
        remote_ref_exists=True
    )


def analyze_tracking(git: GitFacade, tracking: TrackingRelationship) -> RelationshipSummary:
    """Analyze a local branch against the remote branch it tracks."""
    return analyze_relationship(git, tracking.local_ref, tracking.remote_ref)
