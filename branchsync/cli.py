"""Command-line interface: status, sync, ffwd and track."""

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, TextIO

from .config import Config, load_configuration
from .git_sync.error_types import GitSyncError
from .git_sync.manager import BranchSyncManager
from .git_sync.utils import GitSyncResult, result_from_error
from .logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="branchsync",
        description="Keep local git branches in step with the remote branches they track",
    )
    ap.add_argument("-C", dest="repo_dir", metavar="DIR", help="Run as if started in DIR")
    verbosity = ap.add_mutually_exclusive_group()
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only print errors")
    verbosity.add_argument("-v", "--verbose", action="count", default=0, help="Log progress (-vv for git commands)")
    ap.add_argument("--color", dest="color", action="store_true", default=None, help="Colorize status output")
    ap.add_argument("--no-color", dest="color", action="store_false", help="Disable colors")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_status = sub.add_parser("status", help="Show how every local branch relates to its remote branch")
    p_status.add_argument("-f", "--fetch", action="store_true", help="Fetch all remotes first")
    p_status.add_argument("-p", "--pull", action="store_true", help="Fast-forward branches that are only behind")
    p_status.add_argument("-s", "--stash", action="store_true", help="Stash uncommitted edits around the pass")
    p_status.add_argument("-r", "--remote-only", action="store_true", help="Hide branches that track nothing")

    p_sync = sub.add_parser("sync", help="Update a branch, rebasing or merging local work as needed")
    strategy = p_sync.add_mutually_exclusive_group()
    strategy.add_argument("--rebase", dest="prefer_rebase", action="store_true", default=None,
                          help="Rebase clean local commits onto the remote branch (default)")
    strategy.add_argument("--merge", dest="prefer_rebase", action="store_false",
                          help="Merge the remote branch instead of rebasing")
    p_sync.add_argument("-f", "--fetch", action="store_true", help="Fetch the tracked branch first")
    p_sync.add_argument("-s", "--stash", action="store_true", help="Stash uncommitted edits around the update")
    p_sync.add_argument("branch", nargs="?", help="Branch to update (default: current branch)")

    p_ffwd = sub.add_parser("ffwd", help="Fast-forward a branch; refuse if it has diverged")
    p_ffwd.add_argument("-f", "--fetch", action="store_true", help="Fetch the tracked branch first")
    p_ffwd.add_argument("-s", "--stash", action="store_true", help="Stash uncommitted edits around the update")
    p_ffwd.add_argument("branch", nargs="?", help="Branch to update (default: current branch)")

    p_track = sub.add_parser("track", help="Make a branch track a remote branch")
    p_track.add_argument("remote", nargs="?", help="Remote name, or <remote>/<branch> (default: configured remote)")
    p_track.add_argument("branch", nargs="?", help="Local branch (default: current branch)")
    p_track.add_argument("remote_branch", nargs="?", help="Remote branch name (default: same as branch)")
    p_track.add_argument("--start-point", metavar="REF", help="Where to create the branch if it does not exist")
    p_track.add_argument("--replace", action="store_true",
                         help="Reset an existing untracked branch to the remote branch (refuses to drop commits)")
    p_track.add_argument("--marker-commit", action="store_true",
                         help="Record the starting point of a new branch in an empty commit")

    return ap


def _load_config(args: argparse.Namespace) -> Config:
    config = load_configuration()
    if args.repo_dir:
        config = replace(config, repo_dir=Path(args.repo_dir))
    if args.color is not None:
        config = replace(config, color=args.color)
    return config


def _log_level(args: argparse.Namespace, config: Config) -> str:
    if args.quiet:
        return "ERROR"
    if args.verbose >= 2:
        return "DEBUG"
    if args.verbose == 1:
        return "INFO"
    return config.log_level


def run_command(manager: BranchSyncManager, args: argparse.Namespace) -> GitSyncResult:
    """Dispatch parsed arguments to the matching manager command."""
    config = manager.config

    if args.cmd == "status":
        policy = config.policy(
            do_fetch=args.fetch,
            do_pull=args.pull,
            do_stash=args.stash,
            remote_only=args.remote_only
        )
        return manager.status(policy)

    if args.cmd == "sync":
        policy = config.policy(prefer_rebase=args.prefer_rebase, do_fetch=args.fetch, do_stash=args.stash)
        return manager.sync(policy, args.branch)

    if args.cmd == "ffwd":
        policy = config.policy(do_fetch=args.fetch, do_stash=args.stash)
        return manager.fast_forward(policy, args.branch)

    return manager.track(
        remote=args.remote,
        branch=args.branch,
        remote_branch=args.remote_branch,
        start_point=args.start_point,
        replace=args.replace,
        marker_commit=args.marker_commit
    )


def report_result(result: GitSyncResult, quiet: bool = False,
                  out: Optional[TextIO] = None, err: Optional[TextIO] = None) -> None:
    out = out or sys.stdout
    err = err or sys.stderr

    if result.success:
        if result.message and not quiet:
            print(result.message, file=out)
        return

    print(f"error: {result.message}", file=err)
    for step in result.resolution_steps:
        print(f"  hint: {step}", file=err)


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    try:
        config = _load_config(args)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    setup_logging(config, _log_level(args, config))

    try:
        manager = BranchSyncManager(config)
    except GitSyncError as e:
        result = result_from_error(e, args.cmd)
    else:
        result = run_command(manager, args)

    report_result(result, quiet=args.quiet)
    return result.exit_status


if __name__ == "__main__":
    sys.exit(main())
