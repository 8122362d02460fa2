"""Structured error responses for the branchsync MCP tools."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Any, Optional

from .git_sync.error_strategies import get_error_resolution
from .git_sync.error_types import ErrorCategory, GitSyncError
from .git_sync.utils import GitSyncResult


@dataclass
class ErrorResponse:
    """Standardized error response format for tool replies."""
    error: str
    error_code: str
    message: str
    timestamp: str
    category: str
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error response to dictionary format."""
        result = {
            "error": self.error,
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp,
            "category": self.category
        }
        if self.context:
            result["context"] = self.context
        return result


class ErrorHandler:
    """Turns failed commands and unexpected exceptions into ErrorResponses."""

    def __init__(self):
        self.logger = logging.getLogger('branchsync.error_handler')

    def handle_git_sync_error(self, error: GitSyncError, context: Dict[str, Any] = None) -> ErrorResponse:
        """Handle an error raised by the synchronization core."""
        context = dict(context or {})
        resolution = get_error_resolution(error.category)
        context.setdefault("resolution_steps", list(resolution.resolution_steps))
        context.setdefault("exit_status", error.exit_status)

        error_response = ErrorResponse(
            error=resolution.user_message,
            error_code=error.error_code,
            message=error.message,
            timestamp=datetime.now().isoformat(),
            category=error.category.value,
            context=context
        )

        self.logger.warning(
            f"Git sync error: {error.message}",
            extra={
                'operation': 'git_sync_error',
                'error_code': error.error_code,
                'repository_path': context.get('repository_path')
            }
        )

        return error_response

    def handle_failed_result(self, result: GitSyncResult, context: Dict[str, Any] = None) -> ErrorResponse:
        """Build an ErrorResponse from a failed command result."""
        context = dict(context or {})
        category = ErrorCategory[result.error_code] if result.error_code in ErrorCategory.__members__ \
            else ErrorCategory.SUBPROCESS_FAILED
        resolution = get_error_resolution(category)
        context.setdefault("resolution_steps", list(result.resolution_steps))
        context.setdefault("exit_status", result.exit_status)
        context.setdefault("operation", result.operation)

        return ErrorResponse(
            error=resolution.user_message,
            error_code=category.name,
            message=result.message,
            timestamp=datetime.now().isoformat(),
            category=category.value,
            context=context
        )

    def handle_unexpected_error(self, error: Exception, context: Dict[str, Any] = None) -> ErrorResponse:
        """Handle an exception that escaped the synchronization core."""
        context = context or {}

        error_response = ErrorResponse(
            error="Unexpected failure",
            error_code="UNEXPECTED_ERROR",
            message=f"Operation failed: {error}",
            timestamp=datetime.now().isoformat(),
            category=ErrorCategory.SUBPROCESS_FAILED.value,
            context=context
        )

        self.logger.error(
            f"Unexpected error: {error}",
            exc_info=True,
            extra={'operation': 'unexpected_error'}
        )

        return error_response


# Initialize global error handler
error_handler = ErrorHandler()
