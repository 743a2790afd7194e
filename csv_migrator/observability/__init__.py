"""
Observability module.

Provides logging configuration, structured logging helpers and HTTP
middleware.
"""

from csv_migrator.observability.log_utils import log_exception_with_context, safe_log_value
from csv_migrator.observability.logger import configure_logging, correlation_id_var

__all__ = [
    "configure_logging",
    "correlation_id_var",
    "log_exception_with_context",
    "safe_log_value",
]
