"""Uniform result wrapper returned by the service layer."""

import logging
import sqlite3
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from utils.errors import ErrorCategory, PartialFailureError, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

STORE_FAILURES = (StoreError, sqlite3.Error, RuntimeError)


@dataclass
class ServiceResult(Generic[T]):
    """Either data or an error message, never an exception."""

    data: T | None = None
    error: str | None = None
    category: ErrorCategory | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, message: str, category: ErrorCategory = ErrorCategory.STORE_ERROR) -> "ServiceResult[Any]":
        return cls(error=message, category=category)

    @classmethod
    def not_found(cls, entity: str, record_id: str) -> "ServiceResult[Any]":
        return cls(error=f"{entity} not found: {record_id}", category=ErrorCategory.NOT_FOUND)

    def passthrough(self) -> "ServiceResult[Any]":
        """The same failure, for a caller returning a different data type."""
        return ServiceResult(error=self.error, category=self.category)


async def run_store_call(operation: str, awaitable: Awaitable[T]) -> ServiceResult[T]:
    """Await a store call, returning store failures as a failed result."""
    try:
        return ServiceResult(data=await awaitable)
    except PartialFailureError as e:
        logger.error(f"{operation} rolled back: {e}")
        return ServiceResult.failure(str(e), ErrorCategory.PARTIAL_FAILURE)
    except STORE_FAILURES as e:
        logger.error(f"{operation} failed: {e}")
        return ServiceResult.failure(str(e))
