"""
Storage and persistence modules
"""

from .history_record import HistoryRecord, PendingJob
from .settings import Settings
from .job_store import JobStore

__all__ = [
    'HistoryRecord',
    'PendingJob',
    'Settings',
    'JobStore'
]
