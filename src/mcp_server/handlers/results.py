"""Turn service results into tool responses."""

from typing import Any

from services.result import ServiceResult
from utils.errors import ErrorCategory, ToolError, get_recovery_suggestion


def service_error(result: ServiceResult[Any], entity_id: str | None = None) -> dict[str, Any]:
    """Build the error response for a failed ServiceResult."""
    category = result.category or ErrorCategory.STORE_ERROR
    return ToolError(
        category=category,
        message=result.error or "Operation failed",
        entity_id=entity_id,
        recovery=get_recovery_suggestion(category),
    ).to_dict()


def not_found(entity: str, entity_id: str) -> dict[str, Any]:
    return ToolError(
        category=ErrorCategory.NOT_FOUND,
        message=f"{entity} not found: {entity_id}",
        entity_id=entity_id,
        recovery=get_recovery_suggestion(ErrorCategory.NOT_FOUND),
    ).to_dict()
