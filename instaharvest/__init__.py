"""
InstaHarvest - Incremental post collection from lazily loaded profile pages
"""

from .config import ScraperConfig
from .controller import ScraperController
from .builder import ScraperBuilder
from .collector import CollectionEngine, EngineStatus
from .storage import HistoryRecord, JobStore, Settings
from .export import ExportFormat, ExportRenderer
from .extraction import Post, PostExtractor

__all__ = [
    'ScraperConfig',
    'ScraperController',
    'ScraperBuilder',
    'CollectionEngine',
    'EngineStatus',
    'HistoryRecord',
    'JobStore',
    'Settings',
    'ExportFormat',
    'ExportRenderer',
    'Post',
    'PostExtractor'
]
