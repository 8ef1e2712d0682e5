"""
Core module initialization.
Exports configuration, logging utilities and the error taxonomy.
"""

from bistro.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from bistro.core.errors import (
    ErrorKind,
    BistroError,
    AuthFailed,
    FetchFailed,
    SeedFailed,
    WriteFailed,
    ValidationFailed,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "ErrorKind",
    "BistroError",
    "AuthFailed",
    "FetchFailed",
    "SeedFailed",
    "WriteFailed",
    "ValidationFailed",
]
