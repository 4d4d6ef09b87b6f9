"""
Utility modules for the harvester
"""

from .error_handler import (
    ErrorHandler,
    ErrorType,
    ScraperError,
    TargetUnavailableError,
    ExtractionError,
    StorageError,
    ExportError
)

__all__ = [
    'ErrorHandler',
    'ErrorType',
    'ScraperError',
    'TargetUnavailableError',
    'ExtractionError',
    'StorageError',
    'ExportError'
]
