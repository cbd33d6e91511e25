# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Custom exception hierarchy for Wisdom.

Local failures (validation, preconditions) are raised before any network
call. Remote failures surface as GatewayError and are never retried here.
"""

from __future__ import annotations

from typing import Any


class WisdomException(Exception):  # noqa: N818
    """Base exception for all Wisdom errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(WisdomException):
    """Exception for validation errors.

    Raised when:
    - Tool arguments fail schema validation
    - Numeric values are out of range (trust, confidence)
    - A required cross-reference is missing (e.g. source transform)
    - A string is neither a UUID nor a resolvable name
    """

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class PreconditionError(WisdomException):
    """Exception for missing local prerequisites.

    Raised when:
    - No signing key is configured
    - No agent UUID is configured
    - No current project is set and none was given

    ``remedy`` names the tool that fixes the situation.
    """

    def __init__(self, message: str, remedy: str | None = None):
        details = {}
        if remedy:
            details["remedy"] = remedy
            message = f"{message} Run {remedy} first."
        super().__init__(message, details)
        self.remedy = remedy


class ConfigException(WisdomException):
    """Exception for configuration errors.

    Raised when:
    - A configuration file cannot be written
    - Configuration updates fail validation
    """

    def __init__(self, message: str, path: str | None = None):
        details = {}
        if path:
            details["path"] = path
        super().__init__(message, details)
        self.path = path


class NotFoundError(WisdomException):
    """Exception for resource not found errors.

    Raised when:
    - A tag name does not resolve to any tag
    - An entity id resolves to nothing of any known kind
    """

    def __init__(self, resource_type: str, resource_id: str):
        message = f"{resource_type} not found: {resource_id}"
        details = {
            "resource_type": resource_type,
            "resource_id": resource_id,
        }
        super().__init__(message, details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class GatewayError(WisdomException):
    """Exception for failed gateway calls.

    Carries the gateway's own error message when the body was parseable,
    otherwise a transport-level description.
    """

    def __init__(self, message: str, status_code: int | None = None):
        details = {}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.status_code = status_code


class GatewayNotFoundError(GatewayError):
    """The gateway answered 404 for the requested entity."""


class GatewayConnectionError(GatewayError):
    """The gateway could not be reached or the request timed out."""

    def __init__(self, base_url: str, detail: str = ""):
        message = f"Cannot connect to gateway at {base_url}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.base_url = base_url
