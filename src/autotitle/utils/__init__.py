"""
Shared constants, structured logging and filesystem helpers.

The constants module defines the template placeholder vocabulary, default
media formats and backup file names; the logger module provides the
structured log() function used across the package.
"""

from .constants import (
    CACHE_ROOT,
    DEFAULT_BACKUP_DIR_NAME,
    DEFAULT_FORMATS,
    DEFAULT_MAP_FILE,
    FIELD_GLUE,
    FILLER_MARKER,
    MAPPINGS_FILE_NAME,
    REGISTRY_FILE_NAME,
)
from .logger import LogLevel

__all__ = [
    "CACHE_ROOT",
    "DEFAULT_BACKUP_DIR_NAME",
    "DEFAULT_FORMATS",
    "DEFAULT_MAP_FILE",
    "FIELD_GLUE",
    "FILLER_MARKER",
    "MAPPINGS_FILE_NAME",
    "REGISTRY_FILE_NAME",
    "LogLevel",
]
