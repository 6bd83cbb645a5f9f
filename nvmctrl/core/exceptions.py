"""Custom exceptions used throughout the nvmctrl package."""

from typing import Any, Optional


class NvmCtrlError(Exception):
    """Base exception for all controller model errors.

    All nvmctrl-specific exceptions should inherit from this class.
    This allows catching all model errors with a single except clause.
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Additional context about the error
        """

        super().__init__(message)
        self.details = details or {}


class ConfigurationError(NvmCtrlError):
    """Raised when there's an error in configuration.

    This includes:
    - Unparseable or incomplete YAML
    - Invalid topology (non-positive counts, bad width ratio)
    - Rule table entries outside the partition bounds
    """

    def __init__(
        self,
        config_key: Optional[str] = None,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize configuration error.

        Args:
            config_key: The configuration key that caused the error
            message: Description of what's wrong. If omitted, config_key is
                treated as the message and the key defaults to "configuration".
            details: Additional context
        """
        if message is None:
            message = config_key or "Invalid configuration"
            config_key = "configuration"
        if config_key is None:
            config_key = "configuration"

        full_message = f"Configuration error for '{config_key}': {message}"
        super().__init__(message=full_message, details=details)
        self.config_key = config_key


class AddressOutOfRangeError(NvmCtrlError):
    """Raised when an address component exceeds its configured bound.

    Examples:
    - bank index >= number of banks
    - page index past the partition end address
    - flat address wider than the configured address width
    """

    def __init__(
        self,
        field: str,
        value: int,
        limit: int,
        details: Optional[dict[str, Any]] = None,
    ):
        details = details or {}
        details.update({"field": field, "value": value, "limit": limit})
        message = f"Address out of range: {field}={value} (limit {limit})"
        super().__init__(message=message, details=details)
        self.field = field
        self.value = value
        self.limit = limit


class ProtocolError(NvmCtrlError):
    """Raised when a request or response envelope breaks its invariants.

    Examples:
    - more than one operation bit set on a request
    - program request without a payload word
    - program burst crossing a page boundary
    """


class BackendBusyError(NvmCtrlError):
    """Raised when a transaction is submitted while another is in flight."""

    def __init__(self, message: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        super().__init__(
            message=message or "Backend channel busy: a transaction is already in flight",
            details=details,
        )
