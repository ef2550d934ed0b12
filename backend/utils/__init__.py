"""
Utility functions and decorators.
"""

from .error_handlers import handle_api_errors
from .logging_utils import StructuredLogger, log_operation

__all__ = ["handle_api_errors", "StructuredLogger", "log_operation"]
