#!/usr/bin/env python3
"""
Integration tests against real git repositories.

Each test builds a bare "remote", a seed clone that publishes commits to it
and a working clone that branchsync operates on. Skipped when git is missing.
"""

import shutil
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

# Add the project root to the path so we can import branchsync modules
sys.path.insert(0, str(Path(__file__).parent))

from branchsync.config import Config
from branchsync.git_sync.error_types import NotARepositoryError
from branchsync.git_sync.facade import GitPythonFacade
from branchsync.git_sync.manager import BranchSyncManager
from branchsync.platform import get_git_executable, validate_git_availability

GIT_AVAILABLE, GIT_ERROR = validate_git_availability()


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        [get_git_executable(), *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True
    )
    return result.stdout.strip()


def configure_identity(repo: Path) -> None:
    git(repo, "config", "user.name", "Branch Sync Tests")
    git(repo, "config", "user.email", "tests@example.com")
    git(repo, "config", "commit.gpgsign", "false")


def commit_file(repo: Path, name: str, content: str) -> str:
    (repo / name).write_text(content)
    git(repo, "add", name)
    git(repo, "commit", "-q", "-m", f"Update {name}")
    return git(repo, "rev-parse", "HEAD")


@unittest.skipUnless(GIT_AVAILABLE, f"git not available: {GIT_ERROR}")
class TestGitIntegration(unittest.TestCase):
    """End-to-end tests of the commands on real repositories."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.remote = self.temp_dir / "remote.git"
        self.seed = self.temp_dir / "seed"
        self.work = self.temp_dir / "work"

        git(self.temp_dir, "init", "-q", "--bare", str(self.remote))

        self.seed.mkdir()
        git(self.seed, "init", "-q")
        configure_identity(self.seed)
        git(self.seed, "checkout", "-q", "-b", "main")
        commit_file(self.seed, "README", "hello\n")
        git(self.seed, "remote", "add", "origin", str(self.remote))
        git(self.seed, "push", "-q", "origin", "main")
        git(self.remote, "symbolic-ref", "HEAD", "refs/heads/main")

        git(self.temp_dir, "clone", "-q", str(self.remote), str(self.work))
        configure_identity(self.work)

        self.config = Config(repo_dir=self.work, color=False)
        self.manager = BranchSyncManager(self.config)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def publish(self, name: str, content: str) -> str:
        sha = commit_file(self.seed, name, content)
        git(self.seed, "push", "-q", "origin", "HEAD")
        return sha

    def head(self) -> str:
        return git(self.work, "rev-parse", "HEAD")

    def test_ffwd_after_fetch(self):
        published = self.publish("a.txt", "a\n")

        result = self.manager.fast_forward(self.config.policy(do_fetch=True))

        self.assertTrue(result.success, result.message)
        self.assertEqual(result.decision, "fast_forward")
        self.assertEqual(self.head(), published)

    def test_up_to_date_without_fetch(self):
        self.publish("a.txt", "a\n")
        before = self.head()

        result = self.manager.sync(self.config.policy())

        self.assertEqual(result.decision, "up_to_date")
        self.assertEqual(self.head(), before)

    def test_sync_rebases_diverged_branch(self):
        published = self.publish("remote.txt", "remote\n")
        commit_file(self.work, "local.txt", "local\n")

        result = self.manager.sync(self.config.policy(do_fetch=True))

        self.assertTrue(result.success, result.message)
        self.assertEqual(result.decision, "rebase")
        self.assertEqual(result.details["ahead_after"], 1)
        self.assertEqual(result.details["behind_after"], 0)
        self.assertEqual(git(self.work, "rev-parse", "HEAD~1"), published)

    def test_sync_merge_preferred(self):
        self.publish("remote.txt", "remote\n")
        commit_file(self.work, "local.txt", "local\n")

        result = self.manager.sync(self.config.policy(do_fetch=True, prefer_rebase=False))

        self.assertEqual(result.decision, "merge")
        parents = git(self.work, "rev-list", "--parents", "-n", "1", "HEAD").split()
        self.assertEqual(len(parents), 3)

    def test_ffwd_refuses_diverged(self):
        self.publish("remote.txt", "remote\n")
        local = commit_file(self.work, "local.txt", "local\n")

        result = self.manager.fast_forward(self.config.policy(do_fetch=True))

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "DIVERGED")
        self.assertEqual(self.head(), local)

    def test_stash_preserves_uncommitted_edits(self):
        published = self.publish("remote.txt", "remote\n")
        (self.work / "README").write_text("edited\n")

        result = self.manager.sync(self.config.policy(do_fetch=True, do_stash=True))

        self.assertTrue(result.success, result.message)
        self.assertEqual(self.head(), published)
        self.assertEqual((self.work / "README").read_text(), "edited\n")
        self.assertEqual(git(self.work, "stash", "list"), "")

    def test_status_report(self):
        self.publish("remote.txt", "remote\n")
        git(self.work, "fetch", "-q", "origin")
        git(self.work, "branch", "scratch")

        result = self.manager.status(self.config.policy())

        self.assertTrue(result.success)
        lines = result.message.splitlines()
        self.assertTrue(lines[0].startswith("* main"))
        self.assertIn("1 behind origin/main", lines[0])
        self.assertIn("untracked", lines[1])

    def test_track_creates_branch_with_marker_commit(self):
        head = self.head()

        result = self.manager.track(remote="origin", branch="feature", marker_commit=True)

        self.assertTrue(result.success, result.message)
        self.assertEqual(result.details["action"], "created")
        marker = result.details["marker_commit"]
        self.assertEqual(git(self.work, "rev-parse", "feature"), marker)
        self.assertEqual(git(self.work, "rev-parse", f"{marker}^"), head)
        self.assertEqual(git(self.work, "config", "branch.feature.remote"), "origin")
        self.assertEqual(git(self.work, "config", "branch.feature.merge"), "refs/heads/feature")
        self.assertEqual(git(self.work, "symbolic-ref", "--short", "HEAD"), "main")

    def test_track_adopts_and_refuses_to_lose_commits(self):
        git(self.seed, "checkout", "-q", "-b", "topic")
        self.publish("topic.txt", "topic\n")
        git(self.work, "fetch", "-q", "origin")

        git(self.work, "branch", "--no-track", "adopted", "origin/topic")
        adopted = self.manager.track(remote="origin", branch="adopted", remote_branch="topic")
        self.assertEqual(adopted.details["action"], "adopted")

        git(self.work, "checkout", "-q", "-b", "topic")
        local = commit_file(self.work, "mine.txt", "mine\n")
        git(self.work, "checkout", "-q", "main")

        refused = self.manager.track(remote="origin", branch="topic", replace=True)

        self.assertFalse(refused.success)
        self.assertEqual(refused.error_code, "WOULD_LOSE_COMMITS")
        self.assertEqual(git(self.work, "rev-parse", "topic"), local)
        self.assertEqual(
            subprocess.run(
                [get_git_executable(), "config", "branch.topic.remote"],
                cwd=self.work,
                capture_output=True
            ).returncode,
            1
        )

    def test_facade_config_round_trip(self):
        facade = GitPythonFacade(self.work)

        self.assertIsNone(facade.get_config("branchsync.missing"))
        facade.set_config("branchsync.sample", "value")
        self.assertEqual(facade.get_config("branchsync.sample"), "value")
        facade.unset_config("branchsync.sample")
        facade.unset_config("branchsync.sample")
        self.assertIsNone(facade.get_config("branchsync.sample"))

    def test_not_a_repository(self):
        outside = self.temp_dir / "plain"
        outside.mkdir()
        with self.assertRaises(NotARepositoryError):
            GitPythonFacade(outside)


def run_tests():
    """Run all git integration tests."""
    print("Running Git Integration Tests")
    print("=" * 60)

    suite = unittest.TestLoader().loadTestsFromTestCase(TestGitIntegration)
    runner = unittest.TextTestRunner(verbosity=2, stream=sys.stdout)
    result = runner.run(suite)

    success = len(result.failures) == 0 and len(result.errors) == 0
    print(f"\nOverall result: {'PASS' if success else 'FAIL'}")
    return success


if __name__ == "__main__":
    success = run_tests()
    sys.exit(0 if success else 1)
