"""
Custom exceptions for cwfetch.

Provides structured error handling with process exit codes and error
details for reporting on the command line.
"""

from typing import Any, Dict, Optional


class CwFetchException(Exception):
    """Base exception for cwfetch."""

    def __init__(
        self,
        message: str,
        exit_code: int = 1,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code
        self.error_code = error_code
        self.details = details or {}


class ConfigurationError(CwFetchException):
    """Raised when the resolved options cannot produce a valid run."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            exit_code=2,
            error_code="configuration_error",
            details=details,
        )


class InsufficientArgumentsError(ConfigurationError):
    """Raised when a required option is missing for the selected read mode."""

    def __init__(self, message: str, missing: Optional[str] = None) -> None:
        super().__init__(message=message, details={"missing": missing} if missing else None)
        self.error_code = "insufficient_arguments"


class MalformedRecordError(CwFetchException):
    """Raised when the backend returns a record missing a required field."""

    def __init__(self, message: str, field: str, record: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            error_code="malformed_record",
            details={"field": field, "record": record or {}},
        )
        self.field = field


class TransportError(CwFetchException):
    """Raised when a remote call could not complete (connection, timeout, bad body)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            error_code="transport_error",
            details=details,
        )


class BackendRejectedError(CwFetchException):
    """Raised when CloudWatch Logs returns a structured error for the request."""

    def __init__(
        self,
        message: str,
        aws_error_code: str = "Unknown",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="backend_rejected",
            details={"aws_error_code": aws_error_code, **(details or {})},
        )
        self.aws_error_code = aws_error_code


class SyncChannelError(CwFetchException):
    """Raised when the background run did not hand back a result."""

    def __init__(self, message: str = "Background run finished without a result") -> None:
        super().__init__(
            message=message,
            error_code="sync_channel_error",
        )
