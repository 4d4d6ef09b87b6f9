"""
Collection Engine - Interruptible scroll-and-collect loop
"""

from .status import EngineStatus
from .engine import CollectionEngine

__all__ = ['CollectionEngine', 'EngineStatus']
