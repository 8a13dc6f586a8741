"""Utility modules for NoteGraph."""

from notegraph.utils.exceptions import (
    ConfigurationError,
    InternalError,
    InvalidEdgeError,
    NoteGraphError,
    NotFoundError,
    SearchSyncError,
    ServicePoisonedError,
    ValidationError,
)
from notegraph.utils.logger import get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # Exceptions
    "NoteGraphError",
    "ValidationError",
    "InvalidEdgeError",
    "NotFoundError",
    "InternalError",
    "SearchSyncError",
    "ServicePoisonedError",
    "ConfigurationError",
]
