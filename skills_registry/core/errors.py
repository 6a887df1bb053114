# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Custom exceptions for the skills registry.

All exceptions inherit from SkillsError for consistent error handling.
User-correctable errors map to exit code 1, system errors to exit code 2,
and operator cancellation to exit code 0.
"""

from enum import IntEnum
from typing import Optional, Any, List


class ExitCode(IntEnum):
    """Process exit codes"""
    SUCCESS = 0
    USER_ERROR = 1
    SYSTEM_ERROR = 2


class SkillsError(Exception):
    """Base exception for all skills registry errors."""

    exit_code: ExitCode = ExitCode.SYSTEM_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[dict] = None
    ):
        """
        Initialize skills error.

        Args:
            message: Human-readable error message
            status_code: HTTP status code used when surfaced by the server
            details: Additional error details
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def is_retryable(self) -> bool:
        """Whether a transport may retry the failed call."""
        return False

    def to_dict(self) -> dict:
        """Convert error to dictionary for API response."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details
        }


class ValidationError(SkillsError):
    """Input has the wrong shape."""

    exit_code = ExitCode.USER_ERROR

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        expected: Optional[str] = None,
        details: Optional[dict] = None
    ):
        """
        Initialize validation error.

        Args:
            message: Validation error message
            field: Field that failed validation
            value: Offending value
            expected: Description of the accepted format
            details: Additional error details
        """
        details = dict(details or {})
        if field is not None:
            details.setdefault("field", field)
        if expected is not None:
            details.setdefault("expected", expected)
        super().__init__(message, status_code=400, details=details)
        self.field = field
        self.value = value
        self.expected = expected


class ConfigurationError(SkillsError):
    """Required setting missing or invalid."""

    exit_code = ExitCode.USER_ERROR

    def __init__(
        self,
        message: str,
        setting: Optional[str] = None,
        config_file: Optional[str] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, status_code=500, details=details)
        self.setting = setting
        self.config_file = config_file


class AuthorizationError(SkillsError):
    """Sender may not modify the skill."""

    exit_code = ExitCode.USER_ERROR

    def __init__(self, message: str, address: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=403, details=details)
        self.address = address


class DependencyError(SkillsError):
    """Dependency cycle, conflict or unresolvable dependency."""

    exit_code = ExitCode.USER_ERROR

    def __init__(self, message: str, path: Optional[List[str]] = None, details: Optional[dict] = None):
        """
        Initialize dependency error.

        Args:
            message: Dependency error message
            path: Resolution path that led to the failure, e.g. the full cycle
            details: Additional error details
        """
        self.path = list(path or [])
        details = dict(details or {})
        details.setdefault("path", self.path)
        super().__init__(message, status_code=422, details=details)


class NetworkError(SkillsError):
    """Connection-level transport failure."""

    def __init__(
        self,
        message: str,
        transport: Optional[str] = None,
        url: Optional[str] = None,
        details: Optional[dict] = None
    ):
        """
        Initialize network error.

        Args:
            message: Network error message
            transport: Name of the transport that failed
            url: Request URL
            details: Additional error details
        """
        super().__init__(message, status_code=502, details=details)
        self.transport = transport
        self.url = url

    def is_retryable(self) -> bool:
        return True


class HTTPError(NetworkError):
    """Request completed with a non-success status."""

    def __init__(
        self,
        message: str,
        http_status: int,
        transport: Optional[str] = None,
        url: Optional[str] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, transport=transport, url=url, details=details)
        self.http_status = http_status
        self.details.setdefault("http_status", http_status)

    def is_retryable(self) -> bool:
        return self.http_status >= 500


class RequestTimeoutError(NetworkError):
    """Attempt exceeded its time budget."""

    def __init__(
        self,
        message: str,
        timeout: float,
        transport: Optional[str] = None,
        url: Optional[str] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, transport=transport, url=url, details=details)
        self.timeout = timeout


class ParseError(SkillsError):
    """Malformed response body or document."""

    def __init__(self, message: str, content: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=502, details=details)
        # Keep only a prefix of large bodies
        self.content = content[:500] if content else content


class FileSystemError(SkillsError):
    """Local I/O failure."""

    def __init__(self, message: str, path: Optional[str] = None, details: Optional[dict] = None):
        details = dict(details or {})
        if path is not None:
            details.setdefault("path", str(path))
        super().__init__(message, status_code=500, details=details)
        self.path = path


class UserCancelledError(SkillsError):
    """Operator aborted the operation."""

    exit_code = ExitCode.SUCCESS

    def __init__(self, message: str = "Operation cancelled by user", details: Optional[dict] = None):
        super().__init__(message, status_code=499, details=details)


def get_exit_code(error: BaseException) -> int:
    """
    Map an exception to a process exit code.

    Args:
        error: Raised exception

    Returns:
        Exit code (unknown exceptions count as system errors)
    """
    if isinstance(error, SkillsError):
        return int(error.exit_code)
    return int(ExitCode.SYSTEM_ERROR)
