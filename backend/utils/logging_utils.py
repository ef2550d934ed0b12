"""
Structured Logging Utilities

Provides utilities for adding structured context to log messages,
improving observability and debugging.
"""

import logging
import time
from typing import Any, Dict, Optional
from contextvars import ContextVar
from functools import wraps


# Context variable for operation-scoped logging context
_logging_context: ContextVar[Dict[str, Any]] = ContextVar('logging_context', default={})


class StructuredLogger:
    """
    Wrapper around standard logger that adds structured context.

    Usage:
        logger = StructuredLogger(__name__)
        logger.info("Entity created", extra={
            "model": "User",
            "entity_id": user.id,
        })
    """

    def __init__(self, name: str):
        """
        Initialize structured logger.

        Args:
            name: Logger name (typically __name__)
        """
        self.logger = logging.getLogger(name)

    def _add_context(self, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        context = _logging_context.get().copy()
        if extra:
            context.update(extra)
        return context

    def log(self, level: int, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: bool = False):
        self.logger.log(level, message, extra=self._add_context(extra), exc_info=exc_info)

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self.logger.info(message, extra=self._add_context(extra))

    def error(self, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: bool = False):
        self.logger.error(message, extra=self._add_context(extra), exc_info=exc_info)


def set_logging_context(**kwargs):
    """
    Set logging context for the current operation.

    This context will be automatically included in all StructuredLogger
    records emitted within the current context (e.g. one test or request).

    Args:
        **kwargs: Key-value pairs to add to context

    Example:
        set_logging_context(test="test_remove_all", fixture="users")
    """
    context = _logging_context.get().copy()
    context.update(kwargs)
    _logging_context.set(context)


def clear_logging_context():
    """Clear the logging context."""
    _logging_context.set({})


def _describe_target(args) -> Dict[str, Any]:
    """Name the model a call operates on: the first class argument, or the first mapped instance."""
    for arg in args:
        if isinstance(arg, type):
            return {"model": arg.__name__}
        if hasattr(type(arg), '__tablename__'):
            return {"model": type(arg).__name__}
    return {}


def log_operation(operation_name: str, level: int = logging.DEBUG):
    """
    Decorator to log operation start/end with structured context.

    Failures are always logged at ERROR level and re-raised.

    Args:
        operation_name: Name of the operation
        level: Level for the start/completion records

    Example:
        @log_operation("entity_helper.create")
        def create(self, model, mutator=None):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = StructuredLogger(func.__module__)
            context = {"operation": operation_name}
            context.update(_describe_target(args))

            logger.log(level, f"Starting {operation_name}", extra=context)
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                context["error"] = str(e)
                context["error_type"] = type(e).__name__
                logger.error(f"Failed {operation_name}", extra=context, exc_info=True)
                raise
            context["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
            logger.log(level, f"Completed {operation_name}", extra=context)
            return result

        return wrapper

    return decorator
