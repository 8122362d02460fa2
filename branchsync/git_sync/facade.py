"""Typed query / command facade over git.

Every git invocation the synchronization core makes goes through a
``GitFacade``. The GitPython-backed implementation translates raw exit
statuses into the error taxonomy in ``error_types`` exactly once, here, so the
rest of the package never inspects process output.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from git import Repo
from git.exc import GitCommandError, GitCommandNotFound, InvalidGitRepositoryError, NoSuchPathError

from .error_types import (
    ConfigQueryFailedError,
    MergeConflictError,
    NonFastForwardError,
    NotARepositoryError,
    SubprocessFailedError,
)

HEADS_PREFIX = "refs/heads/"
REMOTES_PREFIX = "refs/remotes/"
STASH_REF = "refs/stash"


class GitFacade(ABC):
    """Abstract interface for the git queries and commands the core consumes."""

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @abstractmethod
    def current_branch(self) -> Optional[str]:
        """Return the checked-out branch name, or None when HEAD is detached."""

    @abstractmethod
    def local_branches(self) -> List[str]:
        """Return the short names of all local branches."""

    @abstractmethod
    def remotes(self) -> List[str]:
        """Return the names of all configured remotes."""

    @abstractmethod
    def get_config(self, key: str) -> Optional[str]:
        """Return a config value, or None when the key is absent.

        Raises:
            ConfigQueryFailedError: the query failed for any reason other than absence
        """

    @abstractmethod
    def set_config(self, key: str, value: str) -> None:
        """Write a config value."""

    @abstractmethod
    def unset_config(self, key: str) -> None:
        """Remove a config key; removing an absent key is not an error."""

    @abstractmethod
    def ref_exists(self, ref: str) -> bool:
        """Return True if the fully qualified ref exists in the local ref database."""

    @abstractmethod
    def resolve_ref(self, ref: str) -> Optional[str]:
        """Return the commit id a ref points at, or None if it does not resolve."""

    @abstractmethod
    def commits_only_in(self, ref_a: str, ref_b: str) -> int:
        """Count commits reachable from ref_a but not from ref_b."""

    @abstractmethod
    def has_multi_parent_commit(self, range_spec: str) -> bool:
        """Return True if any commit in ``base..tip`` has more than one parent."""

    @abstractmethod
    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """Return True if ``ancestor`` is reachable from ``descendant``."""

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @abstractmethod
    def fetch(self, remote: str, refspec: Optional[str] = None) -> None:
        """Fetch from a remote."""

    @abstractmethod
    def merge_fast_forward_only(self, ref: str) -> None:
        """Fast-forward the current branch to ``ref``.

        Raises:
            NonFastForwardError: the current branch is not an ancestor of ``ref``
        """

    @abstractmethod
    def merge(self, ref: str) -> None:
        """Merge ``ref`` into the current branch.

        Raises:
            MergeConflictError: git stopped with unmerged paths
        """

    @abstractmethod
    def rebase(self, ref: str) -> None:
        """Rebase the current branch onto ``ref``.

        Raises:
            MergeConflictError: git stopped with unmerged paths
        """

    @abstractmethod
    def create_branch(self, name: str, start_point: Optional[str] = None) -> None:
        """Create a branch without tracking metadata, at ``start_point`` or HEAD."""

    @abstractmethod
    def delete_branch(self, name: str, force: bool = False) -> None:
        """Delete a local branch."""

    @abstractmethod
    def checkout(self, name: str) -> None:
        """Check out a local branch, or detach HEAD at a commit id."""

    @abstractmethod
    def create_marker_commit(self, branch: str, message: str) -> str:
        """Add an empty commit on top of ``branch`` and return its id."""

    @abstractmethod
    def stash_save(self, label: str) -> bool:
        """Stash working-tree edits; return False when there was nothing to stash."""

    @abstractmethod
    def stash_pop(self) -> None:
        """Restore the most recent stash entry."""


class GitPythonFacade(GitFacade):
    """GitFacade implementation running git through GitPython."""

    def __init__(self, repo_dir: Path):
        """
        Open the repository containing ``repo_dir``.

        Args:
            repo_dir: Any directory inside the working tree

        Raises:
            NotARepositoryError: no git repository was found
        """
        self.logger = logging.getLogger('branchsync.git_sync.facade')
        try:
            self.repo = Repo(repo_dir, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise NotARepositoryError(f"Not a git repository: {repo_dir} ({e})")
        self.repo_dir = Path(self.repo.working_tree_dir or repo_dir)

    def _run(self, command: str, *args: str, allowed: Sequence[int] = (0,)) -> Tuple[int, str]:
        """Run one git subcommand and return (status, stdout)."""
        display = f"git {command.replace('_', '-')} {' '.join(args)}".strip()
        self.logger.debug(f"Running: {display}")

        try:
            status, stdout, stderr = getattr(self.repo.git, command)(
                *args, with_extended_output=True, with_exceptions=False
            )
        except GitCommandNotFound as e:
            raise SubprocessFailedError(f"git executable not found: {e}", exit_status=127, command=display)

        if status not in allowed:
            detail = stderr.strip() or stdout.strip()
            self.logger.debug(f"{display} exited with status {status}: {detail}")
            raise SubprocessFailedError(
                f"'{display}' failed with status {status}: {detail}",
                exit_status=status,
                command=display
            )
        return status, stdout

    def _has_unmerged_paths(self) -> bool:
        _, stdout = self._run("ls_files", "--unmerged")
        return bool(stdout.strip())

    def _operation_in_progress(self) -> bool:
        git_dir = Path(self.repo.git_dir)
        return any((git_dir / name).exists() for name in ("rebase-merge", "rebase-apply", "MERGE_HEAD"))

    # Queries

    def current_branch(self) -> Optional[str]:
        status, stdout = self._run("symbolic_ref", "--quiet", "HEAD", allowed=(0, 1))
        if status == 1 or not stdout.startswith(HEADS_PREFIX):
            return None
        return stdout[len(HEADS_PREFIX):]

    def local_branches(self) -> List[str]:
        _, stdout = self._run("for_each_ref", "--format=%(refname)", "refs/heads")
        return [line[len(HEADS_PREFIX):] for line in stdout.splitlines() if line.startswith(HEADS_PREFIX)]

    def remotes(self) -> List[str]:
        _, stdout = self._run("remote")
        return [line.strip() for line in stdout.splitlines() if line.strip()]

    def get_config(self, key: str) -> Optional[str]:
        try:
            status, stdout = self._run("config", "--get", key, allowed=(0, 1))
        except SubprocessFailedError as e:
            raise ConfigQueryFailedError(
                f"Reading config key '{key}' failed with status {e.exit_status}",
                exit_status=e.exit_status,
                command=e.command
            )
        if status == 1:
            return None
        return stdout.strip() or None

    def set_config(self, key: str, value: str) -> None:
        self._run("config", key, value)

    def unset_config(self, key: str) -> None:
        # status 5: key was not set
        self._run("config", "--unset", key, allowed=(0, 5))

    def ref_exists(self, ref: str) -> bool:
        _, stdout = self._run("for_each_ref", "--format=%(refname)", ref)
        return ref in stdout.splitlines()

    def resolve_ref(self, ref: str) -> Optional[str]:
        status, stdout = self._run("rev_parse", "--verify", "--quiet", f"{ref}^{{commit}}", allowed=(0, 1))
        if status != 0:
            return None
        return stdout.strip() or None

    def commits_only_in(self, ref_a: str, ref_b: str) -> int:
        _, stdout = self._run("rev_list", "--count", f"{ref_b}..{ref_a}")
        return int(stdout.strip() or 0)

    def has_multi_parent_commit(self, range_spec: str) -> bool:
        _, stdout = self._run("rev_list", "--min-parents=2", "--max-count=1", range_spec)
        return bool(stdout.strip())

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        status, _ = self._run("merge_base", "--is-ancestor", ancestor, descendant, allowed=(0, 1))
        return status == 0

    # Commands

    def fetch(self, remote: str, refspec: Optional[str] = None) -> None:
        args = [remote] + ([refspec] if refspec else [])
        self._run("fetch", *args)

    def merge_fast_forward_only(self, ref: str) -> None:
        if not self.is_ancestor("HEAD", ref):
            raise NonFastForwardError(f"Cannot fast-forward to '{ref}': HEAD is not an ancestor of it")
        self._run("merge", "--ff-only", ref)

    def merge(self, ref: str) -> None:
        try:
            self._run("merge", "--no-edit", ref)
        except SubprocessFailedError as e:
            if self._has_unmerged_paths():
                raise MergeConflictError(
                    f"Merging '{ref}' stopped with conflicts",
                    exit_status=e.exit_status,
                    command=e.command
                )
            raise

    def rebase(self, ref: str) -> None:
        try:
            self._run("rebase", ref)
        except SubprocessFailedError as e:
            if self._has_unmerged_paths() or self._operation_in_progress():
                raise MergeConflictError(
                    f"Rebasing onto '{ref}' stopped with conflicts",
                    exit_status=e.exit_status,
                    command=e.command
                )
            raise

    def create_branch(self, name: str, start_point: Optional[str] = None) -> None:
        self._run("branch", "--no-track", name, start_point or "HEAD")

    def delete_branch(self, name: str, force: bool = False) -> None:
        self._run("branch", "-D" if force else "-d", name)

    def checkout(self, name: str) -> None:
        self._run("checkout", name)

    def create_marker_commit(self, branch: str, message: str) -> str:
        ref = f"{HEADS_PREFIX}{branch}"
        _, parent = self._run("rev_parse", "--verify", f"{ref}^{{commit}}")
        _, tree = self._run("rev_parse", "--verify", f"{ref}^{{tree}}")
        _, commit = self._run("commit_tree", tree.strip(), "-p", parent.strip(), "-m", message)
        self._run("update_ref", ref, commit.strip(), parent.strip())
        return commit.strip()

    def stash_save(self, label: str) -> bool:
        before = self.resolve_ref(STASH_REF)
        self._run("stash", "push", "-m", label)
        return self.resolve_ref(STASH_REF) != before

    def stash_pop(self) -> None:
        try:
            self._run("stash", "pop")
        except SubprocessFailedError as e:
            if self._has_unmerged_paths():
                raise MergeConflictError(
                    "Restoring stashed edits stopped with conflicts; the stash entry was kept",
                    exit_status=e.exit_status,
                    command=e.command
                )
            raise
