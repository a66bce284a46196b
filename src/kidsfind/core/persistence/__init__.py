"""
Persistence utilities for KidsFind Monitor.

Provides JSON persistence and the initialize/shutdown pattern shared by the
monitoring services.
"""

from .base_manager import BaseDataManager
from .json_manager import JSONRepository

__all__ = [
    "BaseDataManager",
    "JSONRepository",
]
