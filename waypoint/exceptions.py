"""
Exception hierarchy for the Waypoint client.

This module defines the error taxonomy shared by the connection manager,
the context sampler, and the AI connection modes. Every error carries an
error code, structured details, and the underlying cause, and can be
serialized for transport to a UI layer.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    UNKNOWN = "UNKNOWN"
    CONFIGURATION = "CONFIGURATION"
    CONNECTION = "CONNECTION"
    REQUEST = "REQUEST"
    VALIDATION = "VALIDATION"


class WaypointError(Exception):
    """
    Base exception class for all Waypoint errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    error_code : ErrorCode, default=ErrorCode.UNKNOWN
        Categorization code for the error.
    details : dict[str, Any] | None, optional
        Additional context about the error.
    cause : Exception | None, optional
        The underlying exception that caused this error.

    Attributes
    ----------
    message : str
        The error message.
    error_code : ErrorCode
        The error code categorizing this error.
    details : dict[str, Any]
        Additional error context.
    cause : Exception | None
        The underlying exception that caused this error.

    Examples
    --------
    >>> raise WaypointError("Something went wrong", ErrorCode.UNKNOWN)
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.error_code: ErrorCode = error_code
        self.details: dict[str, Any] = details or {}
        self.cause: Exception | None = cause

    def __str__(self) -> str:
        parts: list[str] = [f"[{self.error_code.value}] {self.message}"]
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"Details: {detail_str}")
        if self.cause:
            parts.append(f"Caused by: {type(self.cause).__name__}: {self.cause}")
        return " | ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code.value!r}, "
            f"details={self.details!r}, "
            f"cause={self.cause!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize the error to a dictionary.

        Returns
        -------
        dict[str, Any]
            Dictionary representation of the error with all context.
        """
        result: dict[str, Any] = {
            "type": self.__class__.__name__,
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details,
        }
        if self.cause:
            result["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause),
            }
        return result


class ConfigurationError(WaypointError):
    """
    Exception raised for configuration-related errors.

    Covers missing credentials, unknown providers or modes, invalid
    configuration files, and duplicate or unknown server ids.

    Parameters
    ----------
    message : str
        Human-readable error message.
    config_key : str | None, optional
        The configuration key that caused the error.
    config_file : str | None, optional
        The configuration file path where the error occurred.
    details : dict[str, Any] | None, optional
        Additional context about the error.
    cause : Exception | None, optional
        The underlying exception that caused this error.

    Examples
    --------
    >>> raise ConfigurationError(
    ...     "API key is required",
    ...     config_key="api_key",
    ... )
    """

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        config_file: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if config_key:
            details["config_key"] = config_key
        if config_file:
            details["config_file"] = config_file
        super().__init__(
            message,
            error_code=ErrorCode.CONFIGURATION,
            details=details,
            cause=cause,
        )
        self.config_key: str | None = config_key
        self.config_file: str | None = config_file


class DuplicateIdError(ConfigurationError):
    """
    Exception raised when a server id is registered twice.

    Parameters
    ----------
    server_id : str
        The id that is already registered.

    Examples
    --------
    >>> raise DuplicateIdError("savegame")
    """

    def __init__(self, server_id: str) -> None:
        super().__init__(
            f"Server with ID {server_id} already exists",
            details={"server_id": server_id},
        )
        self.server_id: str = server_id


class NotFoundError(ConfigurationError):
    """
    Exception raised when an operation targets an unregistered server id.

    Parameters
    ----------
    server_id : str
        The id that is not registered.
    """

    def __init__(self, server_id: str) -> None:
        super().__init__(
            f"Server {server_id} not found",
            details={"server_id": server_id},
        )
        self.server_id: str = server_id


class ValidationError(WaypointError):
    """
    Exception raised for validation errors.

    This exception is used when configuration values such as sampling
    weights, token limits, or chunk sizes are out of range.

    Parameters
    ----------
    message : str
        Human-readable error message.
    field : str | None, optional
        The field that failed validation.
    details : dict[str, Any] | None, optional
        Additional context about the error.
    cause : Exception | None, optional
        The underlying exception that caused this error.

    Examples
    --------
    >>> raise ValidationError(
    ...     "Priority weights must not all be zero",
    ...     field="priority",
    ... )
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(
            message,
            error_code=ErrorCode.VALIDATION,
            details=details,
            cause=cause,
        )
        self.field: str | None = field


class ConnectionError(WaypointError):
    """
    Exception raised for connection-related errors.

    Used when a tool server cannot be spawned or fails its handshake, and
    when a backend handle cannot be established.

    Parameters
    ----------
    message : str
        Human-readable error message.
    endpoint : str | None, optional
        The server id or endpoint that failed to connect.
    details : dict[str, Any] | None, optional
        Additional context about the error.
    cause : Exception | None, optional
        The underlying exception that caused this error.

    Examples
    --------
    >>> raise ConnectionError(
    ...     "Failed to start MCP server",
    ...     endpoint="savegame",
    ... )
    """

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if endpoint:
            details["endpoint"] = endpoint
        super().__init__(
            message,
            error_code=ErrorCode.CONNECTION,
            details=details,
            cause=cause,
        )
        self.endpoint: str | None = endpoint


class NotConnectedError(ConnectionError):
    """
    Exception raised when an operation needs a live connection that is absent.

    Raised by tool invocation against a server that is not connected and by
    chat requests sent before an AI connection mode is initialized.
    """


class RequestError(WaypointError):
    """
    Exception raised when a backend chat call fails.

    Parameters
    ----------
    message : str
        Human-readable error message.
    status_code : int | None, optional
        HTTP status code if applicable.
    details : dict[str, Any] | None, optional
        Additional context about the error.
    cause : Exception | None, optional
        The underlying exception that caused this error.

    Examples
    --------
    >>> raise RequestError("Failed to send chat request", status_code=500)
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(
            message,
            error_code=ErrorCode.REQUEST,
            details=details,
            cause=cause,
        )
        self.status_code: int | None = status_code


class CapabilityGapWarning(UserWarning):
    """Warning emitted when a server does not support an optional capability."""
