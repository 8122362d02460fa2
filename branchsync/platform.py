"""Locating the git executable and normalizing repository paths across platforms."""

import platform
import re
import shutil
import subprocess
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

# Commands rely on `git stash push` and `git merge-base --is-ancestor`
MINIMUM_GIT_VERSION = (2, 13)

_VERSION_PATTERN = re.compile(r"git version (\d+)\.(\d+)")


class PlatformType(Enum):
    """Supported platform types."""
    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"
    UNKNOWN = "unknown"


class PlatformInfo:
    """The host platform, detected once."""

    _SYSTEMS = {
        "windows": PlatformType.WINDOWS,
        "darwin": PlatformType.MACOS,
        "linux": PlatformType.LINUX,
    }

    def __init__(self):
        self._platform_type = self._SYSTEMS.get(platform.system().lower(), PlatformType.UNKNOWN)

    @property
    def is_windows(self) -> bool:
        return self._platform_type == PlatformType.WINDOWS

    def get_platform_name(self) -> str:
        return self._platform_type.value


_platform_info: Optional[PlatformInfo] = None


def get_platform_info() -> PlatformInfo:
    """Get the global platform info instance."""
    global _platform_info
    if _platform_info is None:
        _platform_info = PlatformInfo()
    return _platform_info


def normalize_path(path: Union[str, Path]) -> Path:
    """Expand ``~`` and resolve to an absolute path."""
    return Path(path).expanduser().resolve()


def get_git_executable() -> str:
    """Return the git executable name, preferring the one found on PATH."""
    name = "git.exe" if get_platform_info().is_windows else "git"
    return shutil.which(name) or name


def parse_git_version(output: str) -> Optional[Tuple[int, int]]:
    """Extract (major, minor) from ``git --version`` output."""
    match = _VERSION_PATTERN.search(output)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def validate_git_availability() -> Tuple[bool, Optional[str]]:
    """
    Check that a usable git is installed.

    Returns:
        Tuple of (is_available, error_message)
    """
    git_cmd = get_git_executable()

    try:
        result = subprocess.run([git_cmd, "--version"], capture_output=True, text=True, timeout=10)
    except FileNotFoundError:
        return False, f"Git executable '{git_cmd}' not found"
    except subprocess.TimeoutExpired:
        return False, "Git command timed out"
    except OSError as e:
        return False, f"Error checking Git availability: {e}"

    if result.returncode != 0:
        return False, f"Git command failed: {result.stderr.strip()}"

    version = parse_git_version(result.stdout)
    if version is not None and version < MINIMUM_GIT_VERSION:
        wanted = ".".join(str(part) for part in MINIMUM_GIT_VERSION)
        return False, f"Git {wanted} or newer is required, found {result.stdout.strip()}"

    return True, None
