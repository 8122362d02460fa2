"""The single decision point every pull-style command goes through."""

from enum import Enum
from typing import Optional

from ..config import PolicyConfig
from .branch_utils import TrackingRelationship
from .relationship import RelationshipSummary


class SyncDecision(Enum):
    """The one corrective action chosen for a branch."""
    UP_TO_DATE = "up_to_date"
    FAST_FORWARD = "fast_forward"
    REBASE = "rebase"
    MERGE = "merge"
    DIVERGED_ABORT = "diverged_abort"
    UNTRACKED = "untracked"
    NON_EXISTENT_REMOTE_REF = "non_existent_remote_ref"


def decide(summary: RelationshipSummary, policy: PolicyConfig) -> SyncDecision:
    """
    Select the action for a relationship summary under a policy.

    Rules, first match wins:

    1. remote ref missing -> NON_EXISTENT_REMOTE_REF
    2. nothing to pull -> UP_TO_DATE (local-only commits are not our business)
    3. behind only -> FAST_FORWARD
    4. diverged -> DIVERGED_ABORT under fast-forward-only policy, otherwise
       REBASE when rebase is preferred and the local commits contain no
       merges, otherwise MERGE

    Local merge commits are never replayed by an automatic rebase since that
    flattens their topology.
    """
    if not summary.remote_ref_exists:
        return SyncDecision.NON_EXISTENT_REMOTE_REF

    if summary.behind_count == 0:
        return SyncDecision.UP_TO_DATE

    if summary.ahead_count == 0:
        return SyncDecision.FAST_FORWARD

    if policy.fast_forward_only:
        return SyncDecision.DIVERGED_ABORT

    if policy.prefer_rebase and not summary.has_local_merge_commits:
        return SyncDecision.REBASE

    return SyncDecision.MERGE


def decide_for_branch(
    tracking: Optional[TrackingRelationship],
    summary: Optional[RelationshipSummary],
    policy: PolicyConfig
) -> SyncDecision:
    """Like decide(), but UNTRACKED when the branch has no tracking relationship."""
    if tracking is None or summary is None:
        return SyncDecision.UNTRACKED
    return decide(summary, policy)
