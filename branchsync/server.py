"""MCP server exposing the branchsync commands as tools."""

import logging
import sys
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .config import Config, load_configuration, validate_configuration
from .errors import error_handler
from .git_sync.error_types import GitSyncError
from .git_sync.manager import BranchSyncManager
from .git_sync.utils import GitSyncResult
from .logging_config import setup_logging
from .platform import get_platform_info, validate_git_availability


def _reply(result: GitSyncResult, repo_dir) -> dict:
    if result.success:
        return result.to_dict()
    return error_handler.handle_failed_result(result, {"repository_path": str(repo_dir)}).to_dict()


def register_tools(server: FastMCP, server_config: Config) -> None:
    """Register MCP tools with the server instance."""

    def run(command):
        try:
            manager = BranchSyncManager(server_config)
            return _reply(command(manager), server_config.repo_dir)
        except GitSyncError as e:
            return error_handler.handle_git_sync_error(e, {"repository_path": str(server_config.repo_dir)}).to_dict()
        except Exception as e:
            return error_handler.handle_unexpected_error(e).to_dict()

    @server.tool()
    def branch_status(fetch: bool = False, pull: bool = False, stash: bool = False,
                      remote_only: bool = False) -> dict:
        """
        Report how every local branch relates to the remote branch it tracks.

        Args:
            fetch: Fetch all remotes before comparing
            pull: Fast-forward branches that are only behind their remote branch
            stash: Stash uncommitted edits around the pass and restore them afterwards
            remote_only: Leave out branches that track nothing

        Returns:
            Dictionary with a rendered report in ``message`` and one entry per
            branch under ``details.branches`` (state, ahead, behind, tracking)
        """
        policy = server_config.policy(do_fetch=fetch, do_pull=pull, do_stash=stash, remote_only=remote_only)
        return run(lambda manager: manager.status(policy))

    @server.tool()
    def sync_branch(branch: Optional[str] = None, rebase: Optional[bool] = None,
                    fetch: bool = False, stash: bool = False) -> dict:
        """
        Bring a branch up to date with the remote branch it tracks.

        Behind branches are fast-forwarded. A branch that has diverged is
        rebased when its local commits are linear and ``rebase`` is not false,
        otherwise the remote branch is merged in.

        Args:
            branch: Local branch to update (default: the checked-out branch)
            rebase: Prefer rebasing over merging; unset uses the configured default
            fetch: Fetch the tracked branch first
            stash: Stash uncommitted edits around the update

        Returns:
            Dictionary with the decision taken and ahead/behind counts before and after
        """
        policy = server_config.policy(prefer_rebase=rebase, do_fetch=fetch, do_stash=stash)
        return run(lambda manager: manager.sync(policy, branch))

    @server.tool()
    def fast_forward(branch: Optional[str] = None, fetch: bool = False, stash: bool = False) -> dict:
        """
        Fast-forward a branch to the remote branch it tracks.

        Never merges or rebases: a diverged branch is reported as an error
        and left untouched.

        Args:
            branch: Local branch to update (default: the checked-out branch)
            fetch: Fetch the tracked branch first
            stash: Stash uncommitted edits around the update
        """
        policy = server_config.policy(do_fetch=fetch, do_stash=stash)
        return run(lambda manager: manager.fast_forward(policy, branch))

    @server.tool()
    def track_branch(remote: Optional[str] = None, branch: Optional[str] = None,
                     remote_branch: Optional[str] = None, start_point: Optional[str] = None,
                     replace: bool = False, marker_commit: bool = False) -> dict:
        """
        Make a local branch track a remote branch, creating the branch if needed.

        An existing branch that already tracks something else is refused.
        With ``replace`` an untracked branch is reset to the remote branch,
        but only when that drops no commits.

        Args:
            remote: Remote name, or ``<remote>/<branch>`` (default: configured remote)
            branch: Local branch (default: the checked-out branch)
            remote_branch: Branch name on the remote (default: same as ``branch``)
            start_point: Where to create a missing branch (default: HEAD)
            replace: Reset an untracked existing branch to the remote branch
            marker_commit: Record the starting point of a new branch in an empty commit

        Returns:
            Dictionary with ``details.action`` (already_tracking, adopted,
            replaced or created), ``details.created`` and ``details.from``
        """
        return run(lambda manager: manager.track(
            remote=remote,
            branch=branch,
            remote_branch=remote_branch,
            start_point=start_point,
            replace=replace,
            marker_commit=marker_commit
        ))

    init_logger = logging.getLogger('branchsync.init')
    init_logger.info("MCP tools registered successfully")


def initialize_server() -> FastMCP:
    """Load configuration, set up logging and build the MCP server."""
    server_config = load_configuration()
    setup_logging(server_config)
    init_logger = logging.getLogger('branchsync.init')

    validation_issues = validate_configuration(server_config)
    for issue in validation_issues:
        if issue.startswith("ERROR:"):
            init_logger.error(issue[7:])
        elif issue.startswith("WARNING:"):
            init_logger.warning(issue[9:])

    error_count = sum(1 for issue in validation_issues if issue.startswith("ERROR:"))
    if error_count > 0:
        raise RuntimeError(f"Server startup failed due to {error_count} configuration error(s)")

    git_available, git_error = validate_git_availability()
    if not git_available:
        raise RuntimeError(git_error)

    init_logger.info(f"Serving repository {server_config.repo_dir} on {get_platform_info().get_platform_name()}")
    server = FastMCP(
        "branchsync",
        log_level=server_config.log_level.upper()
    )
    register_tools(server, server_config)
    return server


def main():
    """Entry point for the branchsync MCP server (stdio transport)."""
    startup_logger = logging.getLogger('branchsync.startup')

    try:
        server = initialize_server()
        startup_logger.info("Starting server with stdio transport")
        server.run(transport="stdio")
    except KeyboardInterrupt:
        startup_logger.info("Server stopped by user (Ctrl+C)")
    except (RuntimeError, ValueError) as e:
        startup_logger.critical(f"Server failed to start: {e}")
        print(f"CRITICAL: Server failed to start: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
