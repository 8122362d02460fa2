"""Tracking status of every local branch, with optional fetch / fast-forward passes."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from ..config import PolicyConfig
from .branch_utils import TrackingRelationship, resolve_tracking
from .decision import SyncDecision, decide_for_branch
from .facade import GitFacade
from .relationship import RelationshipSummary, analyze_tracking
from .repository_sync import apply_decision, stash_wrapped


class BranchState(Enum):
    """How a local branch relates to the remote branch it tracks."""
    CURRENT = "current"
    AHEAD = "ahead"
    BEHIND = "behind"
    DIVERGED = "diverged"
    NON_EXISTENT_REMOTE = "non_existent_remote"
    UNTRACKED = "untracked"


@dataclass
class BranchReport:
    """One line of the status report."""
    branch: str
    is_current: bool
    state: BranchState
    tracking: Optional[TrackingRelationship] = None
    summary: Optional[RelationshipSummary] = None
    fast_forwarded: bool = False
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "branch": self.branch,
            "is_current": self.is_current,
            "state": self.state.value,
            "tracking": str(self.tracking) if self.tracking else None,
            "fast_forwarded": self.fast_forwarded,
        }
        if self.summary is not None and self.summary.remote_ref_exists:
            data["ahead"] = self.summary.ahead_count
            data["behind"] = self.summary.behind_count
        if self.note:
            data["note"] = self.note
        return data


def classify(summary: RelationshipSummary) -> BranchState:
    """Map a relationship summary onto the state shown in the report."""
    if not summary.remote_ref_exists:
        return BranchState.NON_EXISTENT_REMOTE
    if summary.is_diverged:
        return BranchState.DIVERGED
    if summary.behind_count:
        return BranchState.BEHIND
    if summary.ahead_count:
        return BranchState.AHEAD
    return BranchState.CURRENT


def order_branches(branches: List[str], current: Optional[str]) -> List[str]:
    """Checked-out branch first, then the rest sorted by name."""
    rest = sorted(b for b in branches if b != current)
    if current and current in branches:
        return [current] + rest
    return rest


def fetch_all_remotes(git: GitFacade, logger: logging.Logger) -> None:
    for remote in git.remotes():
        logger.info(f"Fetching {remote}")
        git.fetch(remote)


def _report_branch(git: GitFacade, branch: str, original: Optional[str], policy: PolicyConfig,
                   logger: logging.Logger) -> BranchReport:
    is_current = branch == original
    tracking = resolve_tracking(git, branch)
    summary = analyze_tracking(git, tracking) if tracking is not None else None

    decision = decide_for_branch(tracking, summary, policy.replace(fast_forward_only=True))
    if decision is SyncDecision.UNTRACKED:
        return BranchReport(branch=branch, is_current=is_current, state=BranchState.UNTRACKED)

    report = BranchReport(
        branch=branch,
        is_current=is_current,
        state=classify(summary),
        tracking=tracking,
        summary=summary
    )

    if not policy.do_pull or decision is not SyncDecision.FAST_FORWARD:
        return report

    if original is None:
        report.note = "not fast-forwarded: HEAD is detached"
        return report

    if git.current_branch() != branch:
        git.checkout(branch)
    apply_decision(git, decision, tracking, summary, logger)

    # Re-read so the report shows the state after the update.
    report.summary = analyze_tracking(git, tracking)
    report.state = classify(report.summary)
    report.fast_forwarded = True
    return report


def collect_branch_status(git: GitFacade, policy: PolicyConfig) -> List[BranchReport]:
    """
    Report every local branch against the remote branch it tracks.

    Branches are visited one at a time, in report order, since fast-forwarding
    one branch can change what later branches should see. Fetching happens
    before the pass and stashing wraps the whole pass.

    Args:
        git: Facade for the repository
        policy: ``do_fetch`` fetches all remotes first, ``do_pull`` fast-forwards
            behind branches, ``do_stash`` preserves working-tree edits,
            ``remote_only`` hides untracked branches

    Returns:
        List of BranchReport, checked-out branch first
    """
    logger = logging.getLogger('branchsync.git_sync.status')

    original = git.current_branch()
    branches = order_branches(git.local_branches(), original)

    if policy.do_fetch:
        fetch_all_remotes(git, logger)

    reports: List[BranchReport] = []
    with stash_wrapped(git, policy.do_stash, logger):
        try:
            for branch in branches:
                reports.append(_report_branch(git, branch, original, policy, logger))
        finally:
            if original is not None and git.current_branch() != original:
                git.checkout(original)

    if policy.remote_only:
        reports = [r for r in reports if r.state is not BranchState.UNTRACKED]

    logger.debug(f"Reported {len(reports)} branch(es)")
    return reports


_COLORS = {
    BranchState.CURRENT: "\033[32m",
    BranchState.AHEAD: "\033[36m",
    BranchState.BEHIND: "\033[33m",
    BranchState.DIVERGED: "\033[31m",
    BranchState.NON_EXISTENT_REMOTE: "\033[31m",
    BranchState.UNTRACKED: "\033[2m",
}
_RESET = "\033[0m"


def describe(report: BranchReport) -> str:
    """Plain description of one branch's state."""
    tracking = report.tracking
    summary = report.summary

    if report.state is BranchState.UNTRACKED:
        text = "untracked"
    elif report.state is BranchState.NON_EXISTENT_REMOTE:
        text = f"tracks {tracking}, which does not exist"
    elif report.state is BranchState.DIVERGED:
        text = f"diverged from {tracking} ({summary.ahead_count} ahead, {summary.behind_count} behind)"
    elif report.state is BranchState.BEHIND:
        text = f"{summary.behind_count} behind {tracking}"
    elif report.state is BranchState.AHEAD:
        text = f"{summary.ahead_count} ahead of {tracking}"
    else:
        text = f"up to date with {tracking}"

    if report.fast_forwarded:
        text += " (fast-forwarded)"
    if report.note:
        text += f" ({report.note})"
    return text


def format_branch_report(reports: List[BranchReport], color: bool = False) -> List[str]:
    """Render one line per branch; the checked-out branch is marked with '*'."""
    if not reports:
        return []

    width = max(len(r.branch) for r in reports)
    lines = []
    for report in reports:
        marker = "*" if report.is_current else " "
        text = describe(report)
        if color:
            text = f"{_COLORS[report.state]}{text}{_RESET}"
        lines.append(f"{marker} {report.branch.ljust(width)}  {text}")
    return lines
