import asyncio
import time
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Dict, List, Optional, Any
from collections import defaultdict

logger = logging.getLogger(__name__)


class ErrorType(Enum):
    """Classification of different error types"""
    TARGET_UNAVAILABLE = "target_unavailable"
    EXTRACTION_FAILURE = "extraction_failure"
    EXTRACTION_TIMEOUT = "extraction_timeout"
    STORAGE_FAILURE = "storage_failure"
    EXPORT_FAILURE = "export_failure"
    UNKNOWN_ERROR = "unknown_error"


class ScraperError(Exception):
    """Base class for all harvester errors"""
    error_type = ErrorType.UNKNOWN_ERROR


class TargetUnavailableError(ScraperError):
    """The page cannot be reached or does not identify a profile"""
    error_type = ErrorType.TARGET_UNAVAILABLE


class ExtractionError(ScraperError):
    """One tick of the extraction heuristic failed"""
    error_type = ErrorType.EXTRACTION_FAILURE


class StorageError(ScraperError):
    """Durable state could not be read or written"""
    error_type = ErrorType.STORAGE_FAILURE


class ExportError(ScraperError):
    """Unknown export format, missing record or failed download"""
    error_type = ErrorType.EXPORT_FAILURE


@dataclass
class ErrorInfo:
    """Information about an error occurrence"""
    target: str
    error_type: ErrorType
    message: str
    timestamp: float
    tick: Optional[int] = None


class ErrorHandler:
    """Classifies and records errors seen during scraping runs"""

    def __init__(self, max_history: int = 500):
        self.max_history = max_history
        self.error_history: List[ErrorInfo] = []

    def classify_error(self, error: Exception) -> ErrorType:
        """Classify an error into appropriate error type"""
        if isinstance(error, ScraperError):
            return error.error_type
        elif isinstance(error, asyncio.TimeoutError):
            return ErrorType.EXTRACTION_TIMEOUT
        elif isinstance(error, OSError):
            return ErrorType.STORAGE_FAILURE

        return ErrorType.UNKNOWN_ERROR

    def record_error(self, target: str, error: Exception,
                     error_type: ErrorType = None, tick: int = None) -> ErrorInfo:
        """Record an error occurrence and log it"""
        error_type = error_type or self.classify_error(error)
        error_info = ErrorInfo(
            target=target,
            error_type=error_type,
            message=str(error) or error.__class__.__name__,
            timestamp=time.time(),
            tick=tick
        )

        self.error_history.append(error_info)
        if len(self.error_history) > self.max_history:
            self.error_history = self.error_history[-self.max_history:]

        logger.error(f"{error_type.value} on {target}: {error_info.message}")
        return error_info

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary of all errors encountered"""
        if not self.error_history:
            return {"total_errors": 0}

        error_counts = defaultdict(int)
        target_errors = defaultdict(int)

        for error in self.error_history:
            error_counts[error.error_type.value] += 1
            target_errors[error.target] += 1

        # Last 5 minutes
        recent_errors = [e for e in self.error_history if time.time() - e.timestamp < 300]

        return {
            "total_errors": len(self.error_history),
            "error_types": dict(error_counts),
            "target_errors": dict(target_errors),
            "recent_errors": len(recent_errors),
            "last_error": self.error_history[-1].message
        }
