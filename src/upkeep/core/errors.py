# src/upkeep/core/errors.py

"""
Error taxonomy shared by the schedule engine and its adapters.

- ValidationError: bad input on create/update, raised before anything is written
- PersistenceError: the record store failed (wraps the original exception)
- TaskNotFoundError: operation on an id the store does not know
- InvalidTransitionError: guard confirm/cancel without a pending completion
"""

from __future__ import annotations


class UpkeepError(Exception):
    """Base class for all errors raised by upkeep."""


class ValidationError(UpkeepError, ValueError):
    pass


class PersistenceError(UpkeepError):
    def __init__(self, operation: str, path: str, message: str | None = None) -> None:
        self.operation = operation
        self.path = path
        super().__init__(message or f"{operation} failed for {path}")


class TaskNotFoundError(UpkeepError, LookupError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class InvalidTransitionError(UpkeepError):
    pass
