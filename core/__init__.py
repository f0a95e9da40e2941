"""Core application components."""

# Import in correct order to avoid circular dependencies
from core.logger import setup_logger, get_logger
from core.constants import (
    EntryLimits,
    RevealTimings,
    DrawDefaults,
    DrawMode,
    DrawState,
    RevealPhase,
    EngineEvent,
)
from core.exceptions import (
    ApplicationError,
    ConfigurationError,
    DrawEngineError,
    InvalidSpecError,
    ExhaustedPoolError,
    PrizesCompleteError,
    EmptyHistoryError,
    NotAvailableError,
    SessionError,
)

__all__ = [
    # Initializer
    'ApplicationInitializer',
    # Logging
    'setup_logger',
    'get_logger',
    # Constants
    'EntryLimits',
    'RevealTimings',
    'DrawDefaults',
    'DrawMode',
    'DrawState',
    'RevealPhase',
    'EngineEvent',
    # Exceptions
    'ApplicationError',
    'ConfigurationError',
    'DrawEngineError',
    'InvalidSpecError',
    'ExhaustedPoolError',
    'PrizesCompleteError',
    'EmptyHistoryError',
    'NotAvailableError',
    'SessionError',
]

# Import ApplicationInitializer last to avoid circular imports
from core.app_initializer import ApplicationInitializer
