"""Result objects shared by the branch synchronization commands."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .error_strategies import get_error_resolution
from .error_types import GitSyncError


@dataclass
class GitSyncResult:
    """Result of a branch synchronization command."""
    success: bool
    message: str
    operation: str
    error_code: Optional[str] = None
    exit_status: int = 0
    branch_used: Optional[str] = None
    decision: Optional[str] = None
    resolution_steps: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to a plain dictionary."""
        result = {
            "success": self.success,
            "message": self.message,
            "operation": self.operation,
            "exit_status": self.exit_status,
        }
        if self.error_code:
            result["error_code"] = self.error_code
        if self.branch_used:
            result["branch"] = self.branch_used
        if self.decision:
            result["decision"] = self.decision
        if self.resolution_steps:
            result["resolution_steps"] = list(self.resolution_steps)
        if self.details:
            result["details"] = dict(self.details)
        return result


def create_git_sync_result(
    success: bool,
    message: str,
    operation: str,
    branch_used: Optional[str] = None,
    decision: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> GitSyncResult:
    """
    Helper function to create a successful or plain GitSyncResult.

    Args:
        success: Whether the operation was successful
        message: Descriptive message about the operation result
        operation: Name of the operation that was performed
        branch_used: Optional branch name that was used in the operation
        decision: Optional name of the sync decision that was applied
        details: Optional extra structured data

    Returns:
        GitSyncResult instance with all fields populated
    """
    return GitSyncResult(
        success=success,
        message=message,
        operation=operation,
        exit_status=0 if success else 1,
        branch_used=branch_used,
        decision=decision,
        details=details or {}
    )


def result_from_error(error: GitSyncError, operation: str, branch_used: Optional[str] = None) -> GitSyncResult:
    """
    Translate a core exception into a failed GitSyncResult.

    Args:
        error: The exception raised by the synchronization core
        operation: Name of the operation that failed
        branch_used: Optional branch name the operation was working on

    Returns:
        GitSyncResult carrying the error code, exit status and resolution steps
    """
    resolution = get_error_resolution(error.category)
    return GitSyncResult(
        success=False,
        message=error.message,
        operation=operation,
        error_code=error.error_code,
        exit_status=error.exit_status,
        branch_used=branch_used,
        resolution_steps=list(resolution.resolution_steps)
    )
