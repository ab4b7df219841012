"""Utility modules for ZimEstimate MCP."""

from utils.errors import (
    ErrorCategory,
    LayoutNotFoundError,
    PartialFailureError,
    PriceFeedError,
    RecordNotFoundError,
    RoomNotFoundError,
    StoreError,
    ToolError,
    classify_exception,
)

__all__ = [
    "ErrorCategory",
    "LayoutNotFoundError",
    "PartialFailureError",
    "PriceFeedError",
    "RecordNotFoundError",
    "RoomNotFoundError",
    "StoreError",
    "ToolError",
    "classify_exception",
]
