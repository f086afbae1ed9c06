"""Error types and centralized error handling for the steamgrid application.

This module provides:
- Custom exception classes for each failure class of the artwork pipeline
- User-friendly error message generation with suggested actions
- A centralized service that converts library exceptions and logs them once

"Not found" is deliberately absent: a game without artwork anywhere is a
normal outcome that ends up in the run report.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
import structlog

log = structlog.stdlib.get_logger()


class ErrorCategory(Enum):
    """Categories of errors for classification and handling."""
    NETWORK = "network"
    SOURCE = "source"
    STORAGE = "storage"
    CONFIGURATION = "configuration"
    LIBRARY = "library"
    UNEXPECTED = "unexpected"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class UserFriendlyError:
    """User-friendly error representation with suggested actions."""
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    suggested_actions: list[str]
    technical_details: str | None = None


class AppError(Exception):
    """Base exception class for application errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNEXPECTED,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        suggested_actions: list[str] | None = None,
        technical_details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.suggested_actions = suggested_actions or []
        self.technical_details = technical_details

    def to_user_friendly(self) -> UserFriendlyError:
        """Convert to user-friendly error representation."""
        return UserFriendlyError(
            message=self.message,
            category=self.category,
            severity=self.severity,
            suggested_actions=self.suggested_actions,
            technical_details=self.technical_details,
        )


def _join_details(*parts: str | None) -> str | None:
    details = [part for part in parts if part]
    return "\n".join(details) if details else None


class SourceError(AppError):
    """An artwork source answered in a way that cannot be treated as "not found"."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        if status_code is not None and status_code >= 500:
            suggested_actions = [
                "The image server is experiencing issues",
                "Try again later",
            ]
        else:
            suggested_actions = [
                "Check your internet connection",
                "The image source may have changed its URLs",
            ]

        super().__init__(
            message=message,
            category=ErrorCategory.SOURCE,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=_join_details(
                f"Status: {status_code}" if status_code is not None else None,
                f"URL: {url}" if url else None,
                f"{type(original_error).__name__}: {original_error}" if original_error else None,
            ),
        )
        self.url = url
        self.status_code = status_code
        self.original_error = original_error


class ImageDecodeError(SourceError):
    """Artwork bytes were fetched or cached but cannot be decoded as an image."""

    def __init__(
        self,
        message: str,
        game_id: str,
        path: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message=message, original_error=original_error)
        self.suggested_actions = [
            "Delete the cached grid image and its \"(original)\" backup to fetch it again",
            "Replace the image with a valid JPEG or PNG file",
        ]
        self.technical_details = _join_details(
            f"Game: {game_id}",
            f"Path: {path}" if path else None,
            self.technical_details,
        )
        self.game_id = game_id
        self.path = path


class StorageError(AppError):
    """A grid cache file could not be read or written."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        operation: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.ERROR,
            suggested_actions=self._get_suggested_actions(original_error),
            technical_details=_join_details(
                f"Path: {path}" if path else None,
                f"Operation: {operation}" if operation else None,
                f"{type(original_error).__name__}: {original_error}" if original_error else None,
            ),
        )
        self.path = path
        self.operation = operation
        self.original_error = original_error

    @staticmethod
    def _get_suggested_actions(original_error: Exception | None) -> list[str]:
        """Get suggested actions based on error type."""
        if isinstance(original_error, PermissionError):
            return [
                "Check permissions of the Steam grid directory",
                "Close Steam and try again",
            ]
        if isinstance(original_error, OSError):
            error_str = str(original_error).lower()
            if "no space" in error_str or "disk full" in error_str:
                return ["Free up disk space"]
            if "read-only" in error_str:
                return ["The Steam directory is on a read-only file system"]

        return [
            "Check the grid directory path and permissions",
            "Ensure sufficient disk space",
        ]


class ConfigurationError(AppError):
    """Exception for configuration-related errors."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        current_value: Any = None,
        expected: str | None = None,
    ) -> None:
        suggested_actions = [
            "Check the configuration settings",
            "Reset to default values if needed",
        ]
        if expected:
            suggested_actions.append(f"Expected: {expected}")

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=_join_details(
                f"Setting: {setting}" if setting else None,
                f"Current: {current_value}" if current_value is not None else None,
            ),
        )
        self.setting = setting
        self.current_value = current_value
        self.expected = expected


class OverlayLoadError(ConfigurationError):
    """An overlay file has a known image extension but cannot be decoded."""

    def __init__(self, message: str, path: str, original_error: Exception | None = None) -> None:
        super().__init__(message=message, setting="overlays_directory", current_value=path)
        self.suggested_actions = [
            "Remove or replace the broken overlay image",
            "Overlay files must be images named after a category",
        ]
        if original_error:
            self.technical_details = _join_details(
                self.technical_details,
                f"{type(original_error).__name__}: {original_error}",
            )
        self.path = path
        self.original_error = original_error


class LibraryError(AppError):
    """The Steam library (users, profile, game list) could not be read."""

    def __init__(
        self,
        message: str,
        user: str | None = None,
        url: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.LIBRARY,
            severity=ErrorSeverity.ERROR,
            suggested_actions=[
                "Make sure your Steam profile and game list are public",
                "Log in to Steam at least once on this computer",
            ],
            technical_details=_join_details(
                f"User: {user}" if user else None,
                f"URL: {url}" if url else None,
                f"{type(original_error).__name__}: {original_error}" if original_error else None,
            ),
        )
        self.user = user
        self.url = url
        self.original_error = original_error


class ErrorHandlingService:
    """Turns the exception that ended a run into the message shown to the user.

    Library exceptions are converted into AppErrors first, so every fatal
    error carries a category and suggested actions. Technical details are
    logged once, here.
    """

    def handle_error(self, error: Exception, operation: str, component: str) -> UserFriendlyError:
        """Handle an error and return a user-friendly representation.

        Args:
            error: The exception that occurred
            operation: The operation being performed
            component: The component where the error occurred

        Returns:
            User-friendly error representation
        """
        app_error = self._convert_to_app_error(error, operation)
        self._log_error(app_error, operation, component)
        return app_error.to_user_friendly()

    def _convert_to_app_error(self, error: Exception, operation: str) -> AppError:
        if isinstance(error, AppError):
            return error

        if isinstance(error, httpx.TimeoutException):
            return SourceError(
                message="The request timed out. The server may be slow or unavailable.",
                original_error=error,
            )
        elif isinstance(error, httpx.HTTPError):
            return SourceError(
                message="A network error occurred. Please check your connection.",
                original_error=error,
            )
        elif isinstance(error, OSError):
            return StorageError(
                message=f"A file system error occurred: {error}",
                path=str(error.filename) if error.filename else None,
                operation=operation,
                original_error=error,
            )
        elif isinstance(error, json.JSONDecodeError):
            return ConfigurationError(message="Invalid JSON format. The data could not be parsed.")
        elif isinstance(error, ValueError):
            return ConfigurationError(message=str(error))

        return AppError(
            message="An unexpected error occurred.",
            category=ErrorCategory.UNEXPECTED,
            severity=ErrorSeverity.CRITICAL,
            technical_details=f"{type(error).__name__}: {error}",
        )

    def _log_error(self, error: AppError, operation: str, component: str) -> None:
        log_method = log.warning if error.severity == ErrorSeverity.WARNING else log.error
        log_method(
            "Error occurred",
            error_message=error.message,
            category=error.category.value,
            severity=error.severity.value,
            operation=operation,
            component=component,
            technical_details=error.technical_details,
        )

    def create_user_message(self, error: UserFriendlyError) -> str:
        """Format an error and up to three suggested actions for the terminal."""
        parts = [error.message]

        if error.suggested_actions:
            parts.append("\nSuggested actions:")
            for action in error.suggested_actions[:3]:
                parts.append(f"  • {action}")

        return "\n".join(parts)


_error_service: ErrorHandlingService | None = None


def get_error_service() -> ErrorHandlingService:
    """Get the global error handling service instance."""
    global _error_service
    if _error_service is None:
        _error_service = ErrorHandlingService()
    return _error_service
