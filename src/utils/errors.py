"""Error handling utilities for ZimEstimate MCP.

Provides structured error types and utilities for consistent error handling
across the MCP server with actionable recovery suggestions.
"""

import asyncio
import logging
import sqlite3
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Categories of errors for appropriate handling."""

    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    STORE_ERROR = "store_error"
    FEED_ERROR = "feed_error"
    PARTIAL_FAILURE = "partial_failure"
    INTERNAL_ERROR = "internal_error"


@dataclass
class ToolError:
    """Structured error response for MCP tools."""

    category: ErrorCategory
    message: str
    entity_id: str | None = None
    request_id: str | None = None
    recovery: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to response dict."""
        result: dict[str, Any] = {
            "error": self.message,
            "error_category": self.category.value,
        }
        if self.request_id:
            result["request_id"] = self.request_id
        if self.entity_id:
            result["entity_id"] = self.entity_id
        if self.recovery:
            result["recovery"] = self.recovery
        if self.details:
            result["details"] = self.details
        return result


# Recovery suggestions for different error types
RECOVERY_SUGGESTIONS = {
    ErrorCategory.TIMEOUT: "The operation took too long. Try again with a smaller request.",
    ErrorCategory.NOT_FOUND: "Use 'list_projects', 'get_layout' or 'open_layout' to see what exists.",
    ErrorCategory.INVALID_INPUT: "Check parameter values and try again.",
    ErrorCategory.STORE_ERROR: "The database rejected the operation. Check the storage path and try again.",
    ErrorCategory.FEED_ERROR: "The price feed could not be read. Cached and static prices are still available.",
    ErrorCategory.PARTIAL_FAILURE: "Part of the operation failed and was rolled back. Reload the project before retrying.",
    ErrorCategory.INTERNAL_ERROR: "An unexpected error occurred. Please try again.",
}


def get_recovery_suggestion(category: ErrorCategory) -> str:
    """Get recovery suggestion for an error category."""
    return RECOVERY_SUGGESTIONS.get(category, "Please try again.")


class RecordNotFoundError(Exception):
    """Raised when a stored record does not exist."""

    def __init__(self, entity: str, record_id: str):
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity.capitalize()} not found: {record_id}")


class StoreError(Exception):
    """Raised when a database operation fails."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class PartialFailureError(StoreError):
    """Raised when a multi-step write fails part way and is rolled back."""


class PriceFeedError(Exception):
    """Raised when a price feed cannot be fetched or parsed."""

    def __init__(self, feed_id: str, message: str):
        self.feed_id = feed_id
        super().__init__(f"Price feed {feed_id}: {message}")


class RoomNotFoundError(Exception):
    """Raised when a room id is not in the editor session."""

    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room not found: {room_id}")


class LayoutNotFoundError(Exception):
    """Raised when no editor session exists for a layout id."""

    def __init__(self, layout_id: str):
        self.layout_id = layout_id
        super().__init__(f"Layout not found: {layout_id}")


def generate_request_id() -> str:
    """Generate a short unique request ID for tracing."""
    return str(uuid.uuid4())[:8]


def classify_exception(e: Exception, entity_id: str | None = None) -> ToolError:
    """Classify an exception into a structured error.

    Args:
        e: The exception to classify
        entity_id: Optional project, room or material id for context

    Returns:
        ToolError with appropriate category and recovery suggestion
    """
    if isinstance(e, asyncio.TimeoutError):
        category = ErrorCategory.TIMEOUT
        message = "Operation timed out"
    elif isinstance(e, RecordNotFoundError):
        category = ErrorCategory.NOT_FOUND
        message = str(e)
        entity_id = e.record_id
    elif isinstance(e, RoomNotFoundError):
        category = ErrorCategory.NOT_FOUND
        message = str(e)
        entity_id = e.room_id
    elif isinstance(e, LayoutNotFoundError):
        category = ErrorCategory.NOT_FOUND
        message = str(e)
        entity_id = e.layout_id
    elif isinstance(e, PartialFailureError):
        category = ErrorCategory.PARTIAL_FAILURE
        message = str(e)
    elif isinstance(e, (StoreError, sqlite3.Error)):
        category = ErrorCategory.STORE_ERROR
        message = str(e)
    elif isinstance(e, PriceFeedError):
        category = ErrorCategory.FEED_ERROR
        message = str(e)
        entity_id = e.feed_id
    elif isinstance(e, httpx.HTTPError):
        category = ErrorCategory.FEED_ERROR
        message = f"HTTP error: {e}"
    elif isinstance(e, (ValueError, KeyError, TypeError)):
        category = ErrorCategory.INVALID_INPUT
        message = str(e)
    else:
        category = ErrorCategory.INTERNAL_ERROR
        message = f"Unexpected error: {e}"

    return ToolError(
        category=category,
        message=message,
        entity_id=entity_id,
        recovery=get_recovery_suggestion(category),
    )


# Default timeouts
DEFAULT_HANDLER_TIMEOUT = 15.0  # Total time for handler execution
DEFAULT_FEED_TIMEOUT = 10.0  # Time for importing a single price feed
FEED_REQUEST_TIMEOUT = 8.0  # HTTP timeout inside one feed import


async def execute_with_timeout(
    coro: Any,
    timeout: float = DEFAULT_FEED_TIMEOUT,
    feed_id: str | None = None,
) -> Any:
    """Execute a coroutine with a timeout.

    Args:
        coro: Coroutine to execute
        timeout: Timeout in seconds
        feed_id: Optional feed ID for error context

    Returns:
        Result of the coroutine

    Raises:
        PriceFeedError: If a feed operation times out
    """
    try:
        async with asyncio.timeout(timeout):
            return await coro
    except asyncio.TimeoutError:
        if feed_id:
            raise PriceFeedError(feed_id, f"timed out after {timeout}s")
        raise
