"""Application-wide exception classes."""

from __future__ import annotations


class ApplicationError(Exception):
    """Base exception for all application errors."""
    pass


class ConfigurationError(ApplicationError):
    """Raised when configuration is invalid."""
    pass


class DrawEngineError(ApplicationError):
    """Base exception for draw engine rejections.

    ``kind`` is the stable identifier reported to API clients.
    """
    kind = "draw_error"


class InvalidSpecError(DrawEngineError):
    """Raised when an entry or prize configuration is malformed or out of bounds."""
    kind = "invalid_spec"


class ExhaustedPoolError(DrawEngineError):
    """Raised when no entries remain to be drawn."""
    kind = "exhausted_pool"


class PrizesCompleteError(DrawEngineError):
    """Raised when every prize tier has already been awarded."""
    kind = "prizes_complete"


class EmptyHistoryError(DrawEngineError):
    """Raised when undo is requested with no committed draws."""
    kind = "empty"


class NotAvailableError(DrawEngineError):
    """Raised when an entry is expected in the remaining pool but is not there."""
    kind = "not_available"


class SessionError(ApplicationError):
    """Raised when a saved session cannot be applied."""
    kind = "session_error"
