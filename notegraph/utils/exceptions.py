"""
Custom exception hierarchy for NoteGraph.

Provides structured error types the API layer maps to responses.
All exceptions inherit from NoteGraphError for easy catching.
"""


class NoteGraphError(Exception):
    """
    Base exception for all NoteGraph errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize NoteGraph error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ValidationError(NoteGraphError):
    """
    Validation errors.
    Raised when input is caller-correctable: empty title, missing link endpoint.
    """

    pass


class InvalidEdgeError(ValidationError):
    """
    Invalid edge errors.
    Raised when a link would connect a note to itself.
    """

    pass


class NotFoundError(NoteGraphError):
    """
    Resource not found errors.
    Raised when an operation targets a note that doesn't exist.
    """

    pass


class InternalError(NoteGraphError):
    """
    Internal errors.
    Raised for storage I/O failures and index corruption. Not caller-correctable.
    """

    pass


class SearchSyncError(InternalError):
    """
    Search index propagation errors.
    Raised when a relational change committed but the index write failed.
    The committed result is available as ``context["result"]``.
    """

    pass


class ServicePoisonedError(InternalError):
    """
    Raised on every call after an operation aborted mid-way with an unexpected error.
    """

    pass


class ConfigurationError(NoteGraphError):
    """
    Configuration errors.
    Raised when configuration is invalid or missing required values.
    """

    pass
