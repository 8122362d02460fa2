"""Upstream tracking provisioning for local branches."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .branch_utils import (
    TrackingRelationship,
    check_local_branch_exists,
    check_remote_configured,
    merge_config_key,
    remote_config_key,
    resolve_tracking,
)
from .error_types import (
    GitSyncError,
    RemoteRefMissingError,
    RemoteUnknownError,
    TrackingConflictError,
    WouldLoseCommitsError,
)
from .facade import GitFacade


class ProvisionAction(Enum):
    """What provisioning did to the branch."""
    ALREADY_TRACKING = "already_tracking"
    ADOPTED = "adopted"
    REPLACED = "replaced"
    CREATED = "created"


@dataclass
class ProvisionResult:
    """Outcome of provisioning a tracking relationship."""
    created: bool
    from_ref: str
    action: ProvisionAction
    tracking: TrackingRelationship
    marker_commit: Optional[str] = None


def write_tracking(git: GitFacade, tracking: TrackingRelationship, logger: logging.Logger) -> None:
    """
    Write both halves of a tracking relationship, or neither.

    If the merge key cannot be written after the remote key was, the remote key
    is put back to its previous value before the error propagates.
    """
    remote_key = remote_config_key(tracking.branch)
    merge_key = merge_config_key(tracking.branch)

    previous_remote = git.get_config(remote_key)
    git.set_config(remote_key, tracking.remote)
    try:
        git.set_config(merge_key, tracking.merge_value)
    except GitSyncError:
        logger.error(f"Writing {merge_key} failed; restoring {remote_key}")
        if previous_remote is None:
            git.unset_config(remote_key)
        else:
            git.set_config(remote_key, previous_remote)
        raise

    logger.info(f"Branch '{tracking.branch}' now tracks {tracking}")


def split_remote_branch(git: GitFacade, value: str) -> Tuple[Optional[str], str]:
    """
    Split ``<remote>/<branch>`` using the configured remote names.

    The longest matching remote wins, so a remote called ``team/eu`` is not
    mistaken for ``team``.

    Returns:
        (remote, branch), with remote None when no configured remote matches
    """
    candidates: List[str] = sorted(git.remotes(), key=len, reverse=True)
    for remote in candidates:
        prefix = f"{remote}/"
        if value.startswith(prefix) and len(value) > len(prefix):
            return remote, value[len(prefix):]
    return None, value


def _replace_branch(git: GitFacade, desired: TrackingRelationship, logger: logging.Logger) -> None:
    """Point an existing untracked branch at the remote tip, refusing to drop commits."""
    branch = desired.branch
    would_lose = git.commits_only_in(desired.local_ref, desired.remote_ref)
    if would_lose:
        raise WouldLoseCommitsError(branch, str(desired), would_lose)

    if git.current_branch() == branch:
        # The checked-out branch cannot be deleted; with no local-only commits
        # moving it to the remote tip is a fast-forward.
        logger.debug(f"'{branch}' is checked out; fast-forwarding it instead of recreating it")
        git.merge_fast_forward_only(desired.remote_ref)
        return

    logger.debug(f"Recreating '{branch}' at {desired}")
    git.delete_branch(branch, force=True)
    git.create_branch(branch, desired.remote_ref)


def provision_tracking(
    git: GitFacade,
    remote: str,
    branch: str,
    start_point: Optional[str] = None,
    *,
    remote_branch: Optional[str] = None,
    replace: bool = False,
    marker_commit: bool = False,
    marker_message: Optional[str] = None
) -> ProvisionResult:
    """
    Establish a tracking relationship between ``branch`` and ``remote``/``remote_branch``.

    This function handles the following repository states:
    1. Branch exists and already tracks the requested remote branch: no-op
    2. Branch exists and tracks something else: refuse
    3. Branch exists and tracks nothing: adopt it (config only), or with
       ``replace`` recreate it at the remote tip once no commits would be lost
    4. Branch does not exist: create it at ``start_point`` (default HEAD)
       without git's own tracking setup, optionally add an empty marker
       commit, then write the relationship

    Args:
        git: Facade for the repository
        remote: Remote name
        branch: Local branch name
        start_point: Where to create a missing branch (default HEAD)
        remote_branch: Remote branch name (default: same as ``branch``)
        replace: Recreate an existing untracked branch at the remote tip
        marker_commit: Add an empty commit recording where a new branch started
        marker_message: Message for the marker commit

    Returns:
        ProvisionResult describing the action taken

    Raises:
        RemoteUnknownError: the remote has no configured URL
        TrackingConflictError: the branch already tracks a different remote branch
        RemoteRefMissingError: the remote branch to adopt does not exist locally
        WouldLoseCommitsError: replacing the branch would drop local commits
    """
    logger = logging.getLogger('branchsync.git_sync.upstream_tracking')
    desired = TrackingRelationship(branch=branch, remote=remote, remote_branch=remote_branch or branch)

    logger.debug(f"Provisioning tracking of {desired} for branch '{branch}'")

    if not check_remote_configured(git, remote):
        raise RemoteUnknownError(remote)

    if check_local_branch_exists(git, branch):
        existing = resolve_tracking(git, branch)

        if existing == desired:
            logger.info(f"Branch '{branch}' already tracks {desired}")
            return ProvisionResult(
                created=False,
                from_ref=desired.remote_ref,
                action=ProvisionAction.ALREADY_TRACKING,
                tracking=desired
            )

        if existing is not None:
            raise TrackingConflictError(
                f"Branch '{branch}' already tracks {existing}; refusing to repoint it to {desired}"
            )

        if not git.ref_exists(desired.remote_ref):
            raise RemoteRefMissingError(desired.remote_ref)

        if replace:
            _replace_branch(git, desired, logger)
            write_tracking(git, desired, logger)
            return ProvisionResult(
                created=True,
                from_ref=desired.remote_ref,
                action=ProvisionAction.REPLACED,
                tracking=desired
            )

        write_tracking(git, desired, logger)
        return ProvisionResult(
            created=False,
            from_ref=desired.local_ref,
            action=ProvisionAction.ADOPTED,
            tracking=desired
        )

    if not git.ref_exists(desired.remote_ref):
        logger.warning(f"{desired.remote_ref} does not exist yet; '{branch}' will report a missing remote "
                       f"until it is pushed or fetched")

    start = start_point or "HEAD"
    logger.debug(f"Creating branch '{branch}' at {start}")
    git.create_branch(branch, start)

    marker = None
    try:
        if marker_commit:
            message = marker_message or f"Start branch {branch} from {start}"
            marker = git.create_marker_commit(branch, message)
            logger.info(f"Recorded origin of '{branch}' in marker commit {marker[:12]}")

        write_tracking(git, desired, logger)
    except GitSyncError:
        logger.error(f"Provisioning '{branch}' failed; deleting the branch just created")
        git.delete_branch(branch, force=True)
        raise

    return ProvisionResult(
        created=True,
        from_ref=start,
        action=ProvisionAction.CREATED,
        tracking=desired,
        marker_commit=marker
    )
