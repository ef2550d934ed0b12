"""
Error handling decorators and utilities for API endpoints.

Centralizes the mapping from application exceptions to HTTP responses so
endpoints only deal with the success path.
"""

from functools import wraps
from typing import Callable
from fastapi import HTTPException
import logging

from constants import HTTPStatus
from exceptions import (
    ApplicationError,
    ConfigurationError,
    DatabaseError,
    EntityNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def handle_api_errors(operation_name: str):
    """
    Decorator to handle application errors consistently across endpoints.

    Args:
        operation_name: Human-readable name of the operation (e.g., "User update")

    Returns:
        Decorated function that converts application errors to HTTPException

    Example:
        @router.put("/users/{user_id}")
        @handle_api_errors("User update")
        def update_user(...):
            ...
    """
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except EntityNotFoundError as e:
                logger.info(f"{operation_name} - Not found: {e.message}")
                raise HTTPException(
                    status_code=HTTPStatus.NOT_FOUND,
                    detail=e.message
                )
            except ValidationError as e:
                logger.warning(f"{operation_name} - Validation error: {e.message}")
                raise HTTPException(
                    status_code=HTTPStatus.BAD_REQUEST,
                    detail=e.message
                )
            except DatabaseError as e:
                logger.error(f"{operation_name} - Database error: {e.message}", exc_info=True)
                raise HTTPException(
                    status_code=HTTPStatus.CONFLICT,
                    detail=f"Database operation failed: {e.message}"
                )
            except ConfigurationError as e:
                logger.error(f"{operation_name} - Configuration error: {e.message}", exc_info=True)
                raise HTTPException(
                    status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                    detail=e.message
                )
            except ApplicationError as e:
                logger.error(f"{operation_name} - Application error: {e.message}", exc_info=True)
                raise HTTPException(
                    status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                    detail=f"{operation_name} failed: {e.message}"
                )
            except HTTPException:
                # Re-raise HTTPException as-is to preserve status code and detail
                raise

        return wrapper

    return decorator
