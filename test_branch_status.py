#!/usr/bin/env python3
"""
Unit tests for the multi-branch status report.
"""

import sys
import unittest
from pathlib import Path

# Add the project root to the path so we can import branchsync modules
sys.path.insert(0, str(Path(__file__).parent))

from fake_git import FakeGit
from branchsync.config import PolicyConfig
from branchsync.git_sync.status import (
    BranchState,
    collect_branch_status,
    format_branch_report,
    order_branches,
)


class TestCollectBranchStatus(unittest.TestCase):
    """Test cases for collect_branch_status()."""

    def setUp(self):
        """
        Repository layout:
            main     checked out, in sync with origin/main
            behind   2 behind origin/behind
            ahead    1 ahead of origin/ahead
            split    diverged from origin/split
            gone     tracks origin/gone, which was never fetched
            scratch  untracked
        """
        self.git = FakeGit()
        self.git.add_remote("origin")
        base = self.git.chain(None, 2)
        self.base = base

        self.git.set_branch("main", base, checkout=True)
        self.git.set_remote_branch("origin", "main", base)

        self.git.set_branch("behind", base)
        self.behind_remote = self.git.chain(base, 2)
        self.git.set_remote_branch("origin", "behind", self.behind_remote)

        self.git.set_branch("ahead", self.git.chain(base, 1))
        self.git.set_remote_branch("origin", "ahead", base)

        self.git.set_branch("split", self.git.chain(base, 1))
        self.git.set_remote_branch("origin", "split", self.git.chain(base, 1))

        self.git.set_branch("gone", base)
        self.git.set_branch("scratch", base)

        for branch in ("main", "behind", "ahead", "split", "gone"):
            self.git.set_tracking(branch, "origin")

    def states(self, reports):
        return {report.branch: report.state for report in reports}

    def test_classification(self):
        reports = collect_branch_status(self.git, PolicyConfig())

        self.assertEqual(self.states(reports), {
            "main": BranchState.CURRENT,
            "behind": BranchState.BEHIND,
            "ahead": BranchState.AHEAD,
            "split": BranchState.DIVERGED,
            "gone": BranchState.NON_EXISTENT_REMOTE,
            "scratch": BranchState.UNTRACKED,
        })
        self.assertEqual(self.git.mutations(), [])

    def test_current_branch_first_then_sorted(self):
        reports = collect_branch_status(self.git, PolicyConfig())
        self.assertEqual([r.branch for r in reports], ["main", "ahead", "behind", "gone", "scratch", "split"])
        self.assertTrue(reports[0].is_current)

    def test_remote_only_hides_untracked(self):
        reports = collect_branch_status(self.git, PolicyConfig(remote_only=True))
        self.assertNotIn("scratch", [r.branch for r in reports])

    def test_fetch_all_remotes_first(self):
        self.git.add_remote("fork")
        collect_branch_status(self.git, PolicyConfig(do_fetch=True))
        fetched = sorted(args[0] for name, args in self.git.calls if name == "fetch")
        self.assertEqual(fetched, ["fork", "origin"])

    def test_pull_fast_forwards_only_behind_branches(self):
        split_tip = self.git.tip("split")

        reports = collect_branch_status(self.git, PolicyConfig(do_pull=True))
        by_branch = {r.branch: r for r in reports}

        self.assertTrue(by_branch["behind"].fast_forwarded)
        self.assertEqual(by_branch["behind"].state, BranchState.CURRENT)
        self.assertEqual(self.git.tip("behind"), self.behind_remote)
        self.assertEqual(self.git.tip("split"), split_tip)
        self.assertEqual(by_branch["split"].state, BranchState.DIVERGED)
        self.assertNotIn("merge", self.git.mutations())
        self.assertNotIn("rebase", self.git.mutations())
        self.assertEqual(self.git.current_branch(), "main")

    def test_pull_leaves_untracked_and_half_configured_branches(self):
        self.git.config["branch.scratch.remote"] = "origin"

        reports = collect_branch_status(self.git, PolicyConfig(do_pull=True))
        scratch = next(r for r in reports if r.branch == "scratch")

        self.assertEqual(scratch.state, BranchState.UNTRACKED)
        self.assertIsNone(scratch.summary)
        self.assertFalse(scratch.fast_forwarded)
        self.assertNotIn(("checkout", ("scratch",)), self.git.calls)

    def test_pull_with_stash_wraps_whole_pass(self):
        self.git.dirty = True

        collect_branch_status(self.git, PolicyConfig(do_pull=True, do_stash=True))

        mutations = self.git.mutations()
        self.assertEqual(mutations.count("stash_save"), 1)
        self.assertEqual(mutations.count("stash_pop"), 1)
        self.assertEqual(mutations[0], "stash_save")
        self.assertEqual(mutations[-1], "stash_pop")
        self.assertTrue(self.git.dirty)

    def test_pull_on_detached_head_leaves_branches(self):
        self.git.detach()

        reports = collect_branch_status(self.git, PolicyConfig(do_pull=True))
        behind = next(r for r in reports if r.branch == "behind")

        self.assertFalse(behind.fast_forwarded)
        self.assertIn("detached", behind.note)
        self.assertEqual(self.git.tip("behind"), self.base)
        self.assertIsNone(self.git.current_branch())

    def test_to_dict(self):
        reports = collect_branch_status(self.git, PolicyConfig())
        split = next(r for r in reports if r.branch == "split").to_dict()
        gone = next(r for r in reports if r.branch == "gone").to_dict()

        self.assertEqual(split["state"], "diverged")
        self.assertEqual((split["ahead"], split["behind"]), (1, 1))
        self.assertEqual(split["tracking"], "origin/split")
        self.assertNotIn("ahead", gone)


class TestFormatBranchReport(unittest.TestCase):
    """Test cases for the rendered report."""

    def setUp(self):
        self.git = FakeGit()
        self.git.add_remote("origin")
        base = self.git.chain(None, 1)
        self.git.set_branch("main", base, checkout=True)
        self.git.set_remote_branch("origin", "main", self.git.chain(base, 3))
        self.git.set_tracking("main", "origin")
        self.git.set_branch("a-much-longer-name", base)

    def test_plain_lines(self):
        lines = format_branch_report(collect_branch_status(self.git, PolicyConfig()))

        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].startswith("* main "))
        self.assertIn("3 behind origin/main", lines[0])
        self.assertTrue(lines[1].startswith("  a-much-longer-name  untracked"))
        self.assertNotIn("\033[", "".join(lines))

    def test_color_lines(self):
        lines = format_branch_report(collect_branch_status(self.git, PolicyConfig()), color=True)
        self.assertIn("\033[33m", lines[0])
        self.assertTrue(lines[0].endswith("\033[0m"))

    def test_empty(self):
        self.assertEqual(format_branch_report([]), [])


class TestOrderBranches(unittest.TestCase):

    def test_detached(self):
        self.assertEqual(order_branches(["b", "a"], None), ["a", "b"])

    def test_current_first(self):
        self.assertEqual(order_branches(["b", "a", "c"], "c"), ["c", "a", "b"])


def run_tests():
    """Run all branch status tests."""
    print("Running Branch Status Tests")
    print("=" * 60)

    suite = unittest.TestSuite()
    for case in (TestCollectBranchStatus, TestFormatBranchReport, TestOrderBranches):
        suite.addTests(unittest.TestLoader().loadTestsFromTestCase(case))

    runner = unittest.TextTestRunner(verbosity=2, stream=sys.stdout)
    result = runner.run(suite)

    success = len(result.failures) == 0 and len(result.errors) == 0
    print(f"\nOverall result: {'PASS' if success else 'FAIL'}")
    return success


if __name__ == "__main__":
    success = run_tests()
    sys.exit(0 if success else 1)
