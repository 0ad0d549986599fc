"""
UTILITIES - Shared functions and decorators

This module provides common utilities used across the application:
1. Structured JSON logging configuration
2. Database error handling decorator and error classification
3. Timestamp helpers
4. Constants and configuration defaults
"""

import logging
import json
import sys
from functools import wraps
from typing import Callable
from datetime import datetime, timezone
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, OperationalError, InterfaceError

class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        # Add exception info if present
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Marks the handler we install so repeated app factories don't stack handlers
_HANDLER_NAME = "user-service"

def setup_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Setup structured JSON (or plain text) logging on the root logger."""
    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    logger = logging.getLogger()
    for existing in list(logger.handlers):
        if existing.get_name() == _HANDLER_NAME:
            logger.removeHandler(existing)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.addHandler(handler)

def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance with consistent formatting."""
    return logging.getLogger(name)

def classify_db_error(error: SQLAlchemyError) -> str:
    """
    Map a storage exception to the message shown to callers.

    The raw driver message can carry table names, constraint names and
    values, so it only ever goes to the server log.
    """
    if isinstance(error, IntegrityError):
        return "Storage constraint violated"
    if isinstance(error, (OperationalError, InterfaceError)):
        return "Storage unavailable"
    return "Database error"

def handle_db_errors(func: Callable) -> Callable:
    """
    Decorator to handle database errors consistently across all routes.

    Usage:
    @handle_db_errors
    def my_route(db: Session = Depends(get_db)):
        # Your route logic here
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as e:
            logger = get_logger(func.__module__)
            logger.error(f"Database error in {func.__name__}: {format_error_message(e)}")
            raise HTTPException(status_code=500, detail=classify_db_error(e))
        except HTTPException:
            # Re-raise HTTP exceptions as-is
            raise
        except Exception as e:
            logger = get_logger(func.__module__)
            logger.exception(f"Unexpected error in {func.__name__}: {format_error_message(e)}")
            raise HTTPException(status_code=500, detail=Constants.INTERNAL_ERROR)
    return wrapper

# Constants
class Constants:
    """Application constants in one place."""

    # Database connection defaults
    DEFAULT_DB_HOST = "localhost"
    DEFAULT_DB_USER = "postgres"
    DEFAULT_DB_PASSWORD = ""
    DEFAULT_DB_NAME = "crud_demo"
    DEFAULT_DB_PORT = "5432"

    # HTTP server defaults
    DEFAULT_SERVER_HOST = "0.0.0.0"
    DEFAULT_SERVER_PORT = "8080"

    # Schema limits
    MAX_NAME_LENGTH = 100
    MAX_EMAIL_LENGTH = 100

    # ids are a 32-bit SERIAL column; nothing outside this range can exist
    MIN_USER_ID = -2**31
    MAX_USER_ID = 2**31 - 1

    # Response messages
    INVALID_PAYLOAD = "Invalid request payload"
    INTERNAL_ERROR = "Internal server error"
    USER_NOT_FOUND = "User not found"
    USER_DELETED = "User deleted successfully"
    HEALTHY = "healthy"

    TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Utility functions
def get_current_timestamp() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)

def format_timestamp(value: datetime) -> str:
    """Render a timestamp as 'YYYY-MM-DD HH:MM:SS' in UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(Constants.TIMESTAMP_FORMAT)

def format_error_message(error: Exception) -> str:
    """Format error message for logging."""
    return f"{type(error).__name__}: {str(error)}"
