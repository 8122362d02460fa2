"""Configuration management for branchsync commands."""

import os
import logging
from dataclasses import dataclass, field, replace as dataclass_replace
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from .platform import normalize_path

load_dotenv()  # Load .env file if it exists


VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass(frozen=True)
class PolicyConfig:
    """
    Synchronization policy passed explicitly to every core call.

    Attributes:
        prefer_rebase: Rebase clean linear local work onto the remote tip instead of merging
        remote_only: Only consider branches that track a remote branch
        do_fetch: Fetch from the remote(s) before analysing
        do_pull: Fast-forward behind branches while reporting status
        do_stash: Stash uncommitted edits around the whole operation
        fast_forward_only: Never create merge commits or rewrite history
    """
    prefer_rebase: bool = True
    remote_only: bool = False
    do_fetch: bool = False
    do_pull: bool = False
    do_stash: bool = False
    fast_forward_only: bool = False

    def replace(self, **changes) -> "PolicyConfig":
        """Return a copy of this policy with the given fields changed."""
        return dataclass_replace(self, **changes)


@dataclass
class Config:
    """Configuration class for branchsync with validation and defaults."""

    # Repository
    repo_dir: Path = field(default_factory=Path.cwd)
    default_remote: str = "origin"

    # Policy defaults
    prefer_rebase: bool = True

    # Output
    color: bool = True
    log_level: str = "WARNING"

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.repo_dir = normalize_path(self.repo_dir)

        self.log_level = self.log_level.upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {VALID_LOG_LEVELS}")

        if not self.default_remote or not self.default_remote.strip():
            raise ValueError("default_remote must be a non-empty remote name")

    def policy(self, **flags) -> PolicyConfig:
        """
        Build the policy for one command invocation.

        Args:
            **flags: PolicyConfig fields overriding the configured defaults

        Returns:
            PolicyConfig instance
        """
        values = {"prefer_rebase": self.prefer_rebase}
        values.update({key: value for key, value in flags.items() if value is not None})
        return PolicyConfig(**values)


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_configuration() -> Config:
    """Load configuration from environment variables."""
    try:
        return Config(
            repo_dir=Path(os.getenv("BRANCHSYNC_REPO_DIR", os.getcwd())),
            default_remote=os.getenv("BRANCHSYNC_REMOTE", "origin"),
            prefer_rebase=_env_flag("BRANCHSYNC_PREFER_REBASE", True),
            color=_env_flag("BRANCHSYNC_COLOR", True),
            log_level=os.getenv("BRANCHSYNC_LOG_LEVEL", "WARNING").upper(),
        )
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")


def validate_configuration(config: Config) -> List[str]:
    """Validate configuration and return any errors or warnings."""
    errors = []

    if not config.repo_dir.exists():
        errors.append(f"ERROR: Repository directory does not exist: {config.repo_dir}")
    elif not config.repo_dir.is_dir():
        errors.append(f"ERROR: Repository path is not a directory: {config.repo_dir}")

    if any(ch.isspace() for ch in config.default_remote):
        errors.append(f"ERROR: Remote name contains whitespace: {config.default_remote!r}")

    if config.log_level == "DEBUG":
        errors.append("WARNING: DEBUG logging prints every git invocation")

    if errors:
        logging.getLogger('branchsync.config').debug(f"Configuration validation found {len(errors)} issue(s)")

    return errors
