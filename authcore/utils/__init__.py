"""
Authcore Utilities
Configuration, logging and error primitives shared by every module
"""

from .config import Settings, get_settings
from .errors import (
    AppException,
    ErrorCode,
    ErrorResponse,
    InternalError,
    ServiceUnavailableError,
    SuccessResponse,
)
from .logger import get_logger

__all__ = [
    # Config
    "get_settings",
    "Settings",
    # Logging
    "get_logger",
    # Errors
    "AppException",
    "ErrorCode",
    "ErrorResponse",
    "SuccessResponse",
    "InternalError",
    "ServiceUnavailableError",
]
