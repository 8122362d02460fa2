"""In-memory GitFacade used by the unit tests.

Commits form a small DAG of generated ids; refs, config and the stash are
plain containers. Every mutating call is recorded in ``calls`` so tests can
assert that refusals leave the repository untouched.
"""

from pathlib import Path
import sys
from typing import Dict, List, Optional, Set, Tuple

sys.path.insert(0, str(Path(__file__).parent))

from branchsync.git_sync.error_types import (
    ConfigQueryFailedError,
    MergeConflictError,
    NonFastForwardError,
    SubprocessFailedError,
)
from branchsync.git_sync.facade import GitFacade, HEADS_PREFIX, REMOTES_PREFIX

MUTATING = {
    "set_config", "unset_config", "fetch", "merge_fast_forward_only", "merge", "rebase",
    "create_branch", "delete_branch", "checkout", "create_marker_commit", "stash_save", "stash_pop",
}


class FakeGit(GitFacade):
    """A repository that lives entirely in dictionaries."""

    def __init__(self):
        self.parents: Dict[str, Tuple[str, ...]] = {}
        self.messages: Dict[str, str] = {}
        self.refs: Dict[str, str] = {}
        self.config: Dict[str, str] = {}
        self.head: Optional[str] = None
        self.detached_at: Optional[str] = None
        self.stash: List[str] = []
        self.dirty = False
        self.calls: List[Tuple[str, tuple]] = []

        # Remote-side branch tips, copied into refs/remotes/ on fetch
        self.upstream: Dict[str, Dict[str, str]] = {}

        # Failure injection
        self.failing_config_reads: Set[str] = set()
        self.failing_config_writes: Set[str] = set()
        self.conflict_on: Set[str] = set()

        self._counter = 0

    # ------------------------------------------------------------------
    # Scenario builders
    # ------------------------------------------------------------------

    def commit(self, *parents: str, message: str = "") -> str:
        self._counter += 1
        sha = f"{self._counter:040x}"
        self.parents[sha] = tuple(parents)
        self.messages[sha] = message
        return sha

    def chain(self, base: Optional[str], count: int) -> str:
        """Add ``count`` linear commits on top of ``base`` and return the tip."""
        tip = base
        for _ in range(count):
            tip = self.commit(*([tip] if tip else []))
        return tip

    def set_branch(self, name: str, sha: str, checkout: bool = False) -> None:
        self.refs[f"{HEADS_PREFIX}{name}"] = sha
        if checkout or self.head is None and self.detached_at is None:
            self.head = name

    def set_remote_branch(self, remote: str, branch: str, sha: str) -> None:
        self.refs[f"{REMOTES_PREFIX}{remote}/{branch}"] = sha

    def add_remote(self, name: str, url: Optional[str] = None) -> None:
        self.config[f"remote.{name}.url"] = url or f"https://example.com/{name}.git"

    def set_tracking(self, branch: str, remote: str, remote_branch: Optional[str] = None) -> None:
        self.config[f"branch.{branch}.remote"] = remote
        self.config[f"branch.{branch}.merge"] = f"{HEADS_PREFIX}{remote_branch or branch}"

    def detach(self) -> None:
        self.detached_at = self.refs[f"{HEADS_PREFIX}{self.head}"]
        self.head = None

    def tip(self, branch: str) -> str:
        return self.refs[f"{HEADS_PREFIX}{branch}"]

    def mutations(self) -> List[str]:
        return [name for name, _ in self.calls if name in MUTATING]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))

    def _resolve(self, ref: str) -> Optional[str]:
        if ref == "HEAD":
            return self.tip(self.head) if self.head else self.detached_at
        if ref in self.refs:
            return self.refs[ref]
        if f"{HEADS_PREFIX}{ref}" in self.refs:
            return self.refs[f"{HEADS_PREFIX}{ref}"]
        if ref in self.parents:
            return ref
        return None

    def _require(self, ref: str) -> str:
        sha = self._resolve(ref)
        if sha is None:
            raise SubprocessFailedError(f"unknown revision '{ref}'", exit_status=128)
        return sha

    def _reachable(self, sha: Optional[str]) -> Set[str]:
        seen: Set[str] = set()
        stack = [sha] if sha else []
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self.parents[current])
        return seen

    def _only_in(self, ref_a: str, ref_b: str) -> Set[str]:
        return self._reachable(self._require(ref_a)) - self._reachable(self._require(ref_b))

    def _move_head(self, sha: str) -> None:
        if self.head:
            self.refs[f"{HEADS_PREFIX}{self.head}"] = sha
        else:
            self.detached_at = sha

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current_branch(self) -> Optional[str]:
        return self.head

    def local_branches(self) -> List[str]:
        return [ref[len(HEADS_PREFIX):] for ref in self.refs if ref.startswith(HEADS_PREFIX)]

    def remotes(self) -> List[str]:
        return [key[len("remote."):-len(".url")] for key in self.config
                if key.startswith("remote.") and key.endswith(".url")]

    def get_config(self, key: str) -> Optional[str]:
        if key in self.failing_config_reads:
            raise ConfigQueryFailedError(f"Reading config key '{key}' failed with status 3", exit_status=3)
        return self.config.get(key) or None

    def set_config(self, key: str, value: str) -> None:
        self._record("set_config", key, value)
        if key in self.failing_config_writes:
            raise SubprocessFailedError(f"could not lock config file while writing {key}", exit_status=255)
        self.config[key] = value

    def unset_config(self, key: str) -> None:
        self._record("unset_config", key)
        self.config.pop(key, None)

    def ref_exists(self, ref: str) -> bool:
        return ref in self.refs

    def resolve_ref(self, ref: str) -> Optional[str]:
        return self._resolve(ref)

    def commits_only_in(self, ref_a: str, ref_b: str) -> int:
        return len(self._only_in(ref_a, ref_b))

    def has_multi_parent_commit(self, range_spec: str) -> bool:
        base, tip = range_spec.split("..", 1)
        return any(len(self.parents[sha]) > 1 for sha in self._only_in(tip, base))

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return self._require(ancestor) in self._reachable(self._require(descendant))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def fetch(self, remote: str, refspec: Optional[str] = None) -> None:
        self._record("fetch", remote, refspec)
        for branch, sha in self.upstream.get(remote, {}).items():
            self.set_remote_branch(remote, branch, sha)

    def merge_fast_forward_only(self, ref: str) -> None:
        self._record("merge_fast_forward_only", ref)
        target = self._require(ref)
        if not self.is_ancestor("HEAD", target):
            raise NonFastForwardError(f"Cannot fast-forward to '{ref}': HEAD is not an ancestor of it")
        self._move_head(target)

    def merge(self, ref: str) -> None:
        self._record("merge", ref)
        if "merge" in self.conflict_on:
            raise MergeConflictError(f"Merging '{ref}' stopped with conflicts")
        self._move_head(self.commit(self._require("HEAD"), self._require(ref), message=f"Merge {ref}"))

    def rebase(self, ref: str) -> None:
        self._record("rebase", ref)
        if "rebase" in self.conflict_on:
            raise MergeConflictError(f"Rebasing onto '{ref}' stopped with conflicts")
        replayed = len(self._only_in("HEAD", ref))
        self._move_head(self.chain(self._require(ref), replayed))

    def create_branch(self, name: str, start_point: Optional[str] = None) -> None:
        self._record("create_branch", name, start_point)
        if f"{HEADS_PREFIX}{name}" in self.refs:
            raise SubprocessFailedError(f"a branch named '{name}' already exists", exit_status=128)
        self.refs[f"{HEADS_PREFIX}{name}"] = self._require(start_point or "HEAD")

    def delete_branch(self, name: str, force: bool = False) -> None:
        self._record("delete_branch", name, force)
        if name == self.head:
            raise SubprocessFailedError(f"cannot delete branch '{name}' checked out", exit_status=1)
        del self.refs[f"{HEADS_PREFIX}{name}"]

    def checkout(self, name: str) -> None:
        self._record("checkout", name)
        if f"{HEADS_PREFIX}{name}" in self.refs:
            self.head = name
            self.detached_at = None
            return
        if name not in self.parents:
            raise SubprocessFailedError(f"pathspec '{name}' did not match any file(s) known to git", exit_status=1)
        self.head = None
        self.detached_at = name

    def create_marker_commit(self, branch: str, message: str) -> str:
        self._record("create_marker_commit", branch, message)
        sha = self.commit(self.tip(branch), message=message)
        self.refs[f"{HEADS_PREFIX}{branch}"] = sha
        return sha

    def stash_save(self, label: str) -> bool:
        self._record("stash_save", label)
        if not self.dirty:
            return False
        self.stash.append(label)
        self.dirty = False
        return True

    def stash_pop(self) -> None:
        self._record("stash_pop")
        if not self.stash:
            raise SubprocessFailedError("No stash entries found.", exit_status=1)
        self.stash.pop()
        self.dirty = True
