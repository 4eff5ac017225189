"""
Custom Exception Classes for the Page Builder

This module defines the typed failures raised by the plugin orchestration
and live-preview core, plus the error codes used by the HTTP error envelope.

Structural violations (circular dependencies, unknown block types, invalid
tree edits) are raised to the caller.  Runtime failures inside the preview
loop (timeouts, template errors) are caught and logged by the pipeline.
"""

from enum import Enum
from typing import Any

from fastapi import status


class ErrorCode(str, Enum):
    """Machine-readable error codes, stable across releases."""

    # Plugin lifecycle
    PLUGIN_CIRCULAR_DEPENDENCY = "PLUGIN_CIRCULAR_DEPENDENCY"
    PLUGIN_INIT_TIMEOUT = "PLUGIN_INIT_TIMEOUT"
    PLUGIN_NOT_FOUND = "PLUGIN_NOT_FOUND"

    # Block tree
    BLOCK_UNKNOWN_TYPE = "BLOCK_UNKNOWN_TYPE"
    BLOCK_NOT_A_CONTAINER = "BLOCK_NOT_A_CONTAINER"
    BLOCK_NOT_FOUND = "BLOCK_NOT_FOUND"
    BLOCK_DUPLICATE_TYPE = "BLOCK_DUPLICATE_TYPE"

    # Preview
    PREVIEW_TEMPLATE_FAILED = "PREVIEW_TEMPLATE_FAILED"

    # Generic
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INVALID_OPERATION = "INVALID_OPERATION"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class PageBuilderError(Exception):
    """Base exception class for all page builder exceptions"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.error_code = error_code
        super().__init__(self.message)


# ============================================================================
# Plugin Lifecycle Exceptions
# ============================================================================


class CircularDependencyError(PageBuilderError):
    """Raised when capability dependencies form a cycle"""

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        super().__init__(
            message=f"Circular dependency detected: {' -> '.join(self.cycle)}",
            details={"cycle": self.cycle},
            error_code=ErrorCode.PLUGIN_CIRCULAR_DEPENDENCY,
        )


class InitializationTimeoutError(PageBuilderError):
    """Raised when a capability does not finish initializing in time"""

    def __init__(self, name: str, timeout: float):
        self.name = name
        self.timeout = timeout
        super().__init__(
            message=f"{name} initialization timeout after {timeout:g}s",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"name": name, "timeout": timeout},
            error_code=ErrorCode.PLUGIN_INIT_TIMEOUT,
        )


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class ResourceNotFoundError(PageBuilderError):
    """Base class for resource not found errors"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Any | None = None,
        error_code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
    ):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
            error_code=error_code,
        )


class BlockNotFoundError(ResourceNotFoundError):
    """Raised when a block id is not part of the tree"""

    def __init__(self, block_id: Any | None = None):
        super().__init__(resource_type="Block", resource_id=block_id, error_code=ErrorCode.BLOCK_NOT_FOUND)


class PluginNotFoundError(ResourceNotFoundError):
    """Raised when a plugin is not registered"""

    def __init__(self, name: Any | None = None):
        super().__init__(resource_type="Plugin", resource_id=name, error_code=ErrorCode.PLUGIN_NOT_FOUND)


# ============================================================================
# Block Tree Exceptions
# ============================================================================


class UnknownBlockTypeError(PageBuilderError):
    """Raised when a block references a type that is not registered"""

    def __init__(self, type_id: str):
        self.type_id = type_id
        super().__init__(
            message=f"Unknown block type '{type_id}'",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"type_id": type_id},
            error_code=ErrorCode.BLOCK_UNKNOWN_TYPE,
        )


class NotAContainerError(PageBuilderError):
    """Raised when adding children to a block whose type is not a container"""

    def __init__(self, block_id: str, type_id: str):
        super().__init__(
            message=f"Block '{block_id}' of type '{type_id}' cannot hold child blocks",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"block_id": block_id, "type_id": type_id},
            error_code=ErrorCode.BLOCK_NOT_A_CONTAINER,
        )


class DuplicateBlockTypeError(PageBuilderError):
    """Raised when a block type id is registered twice"""

    def __init__(self, type_id: str):
        super().__init__(
            message=f"Block type '{type_id}' is already registered",
            status_code=status.HTTP_409_CONFLICT,
            details={"type_id": type_id},
            error_code=ErrorCode.BLOCK_DUPLICATE_TYPE,
        )


# ============================================================================
# Validation & Business Logic Exceptions
# ============================================================================


class ValidationError(PageBuilderError):
    """Raised when input validation fails"""

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=error_details,
            error_code=ErrorCode.VALIDATION_FAILED,
        )


class InvalidOperationError(PageBuilderError):
    """Raised when an operation is invalid in the current context"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details or {},
            error_code=ErrorCode.INVALID_OPERATION,
        )


# ============================================================================
# Preview Exceptions
# ============================================================================


class TemplateStageError(PageBuilderError):
    """Raised by a templating capability when content cannot be expanded"""

    def __init__(self, message: str, line: int | None = None):
        details = {"line": line} if line is not None else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
            error_code=ErrorCode.PREVIEW_TEMPLATE_FAILED,
        )
