#!/usr/bin/env python3
"""
Tests for the command layer: BranchSyncManager results, the CLI and the MCP tools.
"""

import io
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

# Add the project root to the path so we can import branchsync modules
sys.path.insert(0, str(Path(__file__).parent))

from fake_git import FakeGit
from branchsync import cli, server
from branchsync.config import Config
from branchsync.errors import error_handler
from branchsync.git_sync.error_types import NotARepositoryError, RemoteUnknownError
from branchsync.git_sync.manager import BranchSyncManager
from branchsync.git_sync.utils import result_from_error


def build_repository() -> FakeGit:
    """main tracks origin/main and is one commit behind it."""
    git = FakeGit()
    git.add_remote("origin")
    base = git.chain(None, 2)
    git.set_branch("main", base, checkout=True)
    git.set_remote_branch("origin", "main", git.chain(base, 1))
    git.set_tracking("main", "origin")
    return git


class ManagerTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.config = Config(repo_dir=self.temp_dir, color=False)
        self.git = build_repository()
        self.manager = BranchSyncManager(self.config, git=self.git)

    def tearDown(self):
        self.temp_dir.rmdir()


class TestBranchSyncManager(ManagerTestCase):
    """Test cases for the GitSyncResult produced by each command."""

    def test_status_result(self):
        result = self.manager.status(self.config.policy())

        self.assertTrue(result.success)
        self.assertEqual(result.exit_status, 0)
        self.assertIn("1 behind origin/main", result.message)
        self.assertEqual(result.details["branches"][0]["state"], "behind")

    def test_sync_result(self):
        result = self.manager.sync(self.config.policy())

        self.assertTrue(result.success)
        self.assertEqual(result.decision, "fast_forward")
        self.assertEqual(result.branch_used, "main")
        self.assertEqual(result.details["behind"], 1)
        self.assertEqual(result.details["behind_after"], 0)

    def test_fast_forward_refuses_diverged(self):
        self.git.set_branch("main", self.git.chain(self.git.tip("main"), 1))

        result = self.manager.fast_forward(self.config.policy(prefer_rebase=True))

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "DIVERGED")
        self.assertEqual(result.exit_status, 1)
        self.assertTrue(result.resolution_steps)
        self.assertNotIn("rebase", self.git.mutations())
        self.assertFalse(self.manager.perf_logger.get_metrics("ffwd").success)

    def test_sync_untracked_reports_track_hint(self):
        result = self.manager.sync(self.config.policy(), branch="nope")
        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "UNTRACKED")
        self.assertIn("branchsync track", result.message)

    def test_track_splits_remote_branch(self):
        result = self.manager.track(remote="origin/topic")

        self.assertTrue(result.success)
        self.assertEqual(result.branch_used, "topic")
        self.assertEqual(result.details["action"], "created")
        self.assertEqual(result.details["tracking"], "origin/topic")
        self.assertTrue(result.details["created"])

    def test_track_defaults_to_configured_remote_and_current_branch(self):
        result = self.manager.track()
        self.assertTrue(result.success)
        self.assertEqual(result.details["action"], "already_tracking")
        self.assertEqual(self.git.mutations(), [])

    def test_track_unknown_remote(self):
        result = self.manager.track(remote="upstream", branch="main")
        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "REMOTE_UNKNOWN")

    def test_to_dict(self):
        data = self.manager.sync(self.config.policy()).to_dict()
        self.assertEqual(data["operation"], "sync")
        self.assertEqual(data["decision"], "fast_forward")
        self.assertNotIn("error_code", data)


class TestErrorHandler(unittest.TestCase):
    """Test cases for ErrorResponse construction."""

    def test_git_sync_error(self):
        response = error_handler.handle_git_sync_error(RemoteUnknownError("upstream")).to_dict()
        self.assertEqual(response["error_code"], "REMOTE_UNKNOWN")
        self.assertEqual(response["category"], "remote_unknown")
        self.assertTrue(response["context"]["resolution_steps"])

    def test_unknown_error_code_falls_back(self):
        manager_result = result_from_error(NotARepositoryError("nowhere"), "status")
        manager_result.error_code = "SOMETHING_ELSE"
        response = error_handler.handle_failed_result(manager_result).to_dict()
        self.assertEqual(response["error_code"], "SUBPROCESS_FAILED")


class TestCli(ManagerTestCase):
    """Test cases for the command-line interface."""

    def run_cli(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with patch("branchsync.cli.BranchSyncManager", side_effect=lambda config: BranchSyncManager(config, git=self.git)):
            with redirect_stdout(out), redirect_stderr(err):
                status = cli.main(["-C", str(self.temp_dir), "--no-color", *argv])
        return status, out.getvalue(), err.getvalue()

    def test_status(self):
        status, out, _ = self.run_cli("status")
        self.assertEqual(status, 0)
        self.assertIn("* main", out)

    def test_sync_with_merge_flag(self):
        self.git.set_branch("main", self.git.chain(self.git.tip("main"), 1))

        status, out, _ = self.run_cli("sync", "--merge")

        self.assertEqual(status, 0)
        self.assertIn("Merged origin/main into main", out)
        self.assertIn("merge", self.git.mutations())

    def test_ffwd_diverged_exit_status_and_hints(self):
        self.git.set_branch("main", self.git.chain(self.git.tip("main"), 1))

        status, out, err = self.run_cli("ffwd")

        self.assertEqual(status, 1)
        self.assertEqual(out, "")
        self.assertIn("error: Branch 'main' has diverged", err)
        self.assertIn("hint: Use 'branchsync sync'", err)

    def test_track_with_start_point(self):
        status, out, _ = self.run_cli("track", "--start-point", "main", "origin", "topic")
        self.assertEqual(status, 0)
        self.assertIn("Created branch 'topic' from main", out)
        self.assertEqual(self.git.tip("topic"), self.git.tip("main"))

    def test_quiet_suppresses_success_output(self):
        status, out, _ = self.run_cli("-q", "sync")
        self.assertEqual(status, 0)
        self.assertEqual(out, "")

    def test_not_a_repository(self):
        err = io.StringIO()
        with patch("branchsync.cli.BranchSyncManager", side_effect=NotARepositoryError("Not a git repository: x")):
            with redirect_stderr(err), redirect_stdout(io.StringIO()):
                status = cli.main(["-C", str(self.temp_dir), "status"])
        self.assertEqual(status, 1)
        self.assertIn("Not a git repository", err.getvalue())

    def test_parser_requires_subcommand(self):
        with redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                cli.build_parser().parse_args([])


class FakeServer:
    """Collects the functions registered with @server.tool()."""

    def __init__(self):
        self.tools = {}

    def tool(self):
        def register(func):
            self.tools[func.__name__] = func
            return func
        return register


class TestMcpTools(ManagerTestCase):
    """Test cases for the MCP tool functions."""

    def setUp(self):
        super().setUp()
        self.server = FakeServer()
        server.register_tools(self.server, self.config)
        self.patcher = patch(
            "branchsync.server.BranchSyncManager",
            side_effect=lambda config: BranchSyncManager(config, git=self.git)
        )
        self.patcher.start()

    def tearDown(self):
        self.patcher.stop()
        super().tearDown()

    def test_tools_registered(self):
        self.assertEqual(
            sorted(self.server.tools),
            ["branch_status", "fast_forward", "sync_branch", "track_branch"]
        )

    def test_sync_branch_success(self):
        reply = self.server.tools["sync_branch"]()
        self.assertTrue(reply["success"])
        self.assertEqual(reply["decision"], "fast_forward")

    def test_fast_forward_failure_is_error_response(self):
        self.git.set_branch("main", self.git.chain(self.git.tip("main"), 1))

        reply = self.server.tools["fast_forward"]()

        self.assertEqual(reply["error_code"], "DIVERGED")
        self.assertEqual(reply["context"]["exit_status"], 1)
        self.assertEqual(reply["context"]["operation"], "ffwd")

    def test_track_branch(self):
        reply = self.server.tools["track_branch"](remote="origin", branch="topic", marker_commit=True)
        self.assertTrue(reply["success"])
        self.assertIn("marker_commit", reply["details"])

    def test_not_a_repository_is_error_response(self):
        self.patcher.stop()
        with patch("branchsync.server.BranchSyncManager", side_effect=NotARepositoryError("Not a git repository: x")):
            reply = self.server.tools["branch_status"]()
        self.patcher.start()
        self.assertEqual(reply["error_code"], "NOT_A_REPOSITORY")


def run_tests():
    """Run all command layer tests."""
    print("Running Branch Sync Manager Tests")
    print("=" * 60)

    suite = unittest.TestSuite()
    for case in (TestBranchSyncManager, TestErrorHandler, TestCli, TestMcpTools):
        suite.addTests(unittest.TestLoader().loadTestsFromTestCase(case))

    runner = unittest.TextTestRunner(verbosity=2, stream=sys.stdout)
    result = runner.run(suite)

    success = len(result.failures) == 0 and len(result.errors) == 0
    print(f"\nOverall result: {'PASS' if success else 'FAIL'}")
    return success


if __name__ == "__main__":
    success = run_tests()
    sys.exit(0 if success else 1)
