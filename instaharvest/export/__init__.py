"""
Export pipeline: rendering stored jobs and materializing downloads
"""

from .export_format import ExportFormat
from .renderer import ExportRenderer, ExportResult
from .download_manager import DownloadManager

__all__ = [
    'ExportFormat',
    'ExportRenderer',
    'ExportResult',
    'DownloadManager'
]
