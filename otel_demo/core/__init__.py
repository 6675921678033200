"""
Core module initialization
"""

from .config import config, Config
from .errors import ErrorResponse, ErrorResponseModel, MessageDecodeError
from .logger import logger

__all__ = [
    "config",
    "Config",
    "ErrorResponse",
    "ErrorResponseModel",
    "MessageDecodeError",
    "logger",
]
