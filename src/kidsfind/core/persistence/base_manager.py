"""
Base data manager for the monitoring services.

Provides the common initialize/shutdown lifecycle and JSON storage helpers
each service builds on.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from .json_manager import JSONRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseDataManager(ABC):
    """Base class for services that persist settings and histories."""

    def __init__(self, storage_path: Optional[Path], manager_name: str):
        """
        Initialize base data manager.

        Args:
            storage_path: Storage directory, or None to keep everything in memory
            manager_name: Name of the manager for logging
        """
        self.storage_path = Path(storage_path) if storage_path is not None else None
        self.manager_name = manager_name
        self._initialized = False

    @property
    def is_persistent(self) -> bool:
        return self.storage_path is not None

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Create storage and load persisted data."""
        if self._initialized:
            return

        if self.is_persistent:
            self.storage_path.mkdir(parents=True, exist_ok=True)
            await self._load_data()

        self._initialized = True
        logger.info(
            f"{self.manager_name} initialized with storage: {self.storage_path}"
        )

    async def shutdown(self) -> None:
        """Save pending data and release resources."""
        if not self._initialized:
            return

        await self._stop()
        if self.is_persistent:
            await self._save_data()

        self._initialized = False
        logger.info(f"{self.manager_name} shutdown")

    async def health_check(self) -> bool:
        """Check if the data manager is healthy."""
        if not self._initialized:
            return False
        return self.storage_path is None or self.storage_path.exists()

    def load_json_data(
        self, filename: str, default: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Load a JSON document from the storage directory."""
        if not self.is_persistent:
            return default or {}
        return JSONRepository.load_json(self.storage_path / filename, default or {})

    def save_json_data(self, filename: str, data: Dict[str, Any]) -> bool:
        """Save a JSON document to the storage directory."""
        if not self.is_persistent:
            return False
        return JSONRepository.save_json(self.storage_path / filename, data)

    def load_records(
        self, filename: str, from_dict_fn: Callable[[Dict[str, Any]], T]
    ) -> List[T]:
        if not self.is_persistent:
            return []
        return JSONRepository.load_records(self.storage_path / filename, from_dict_fn)

    def save_records(
        self, filename: str, records: Iterable[Any], limit: Optional[int] = None
    ) -> bool:
        if not self.is_persistent:
            return False
        return JSONRepository.save_records(
            self.storage_path / filename, records, limit=limit
        )

    async def _stop(self) -> None:
        """Cancel timers and stop running work. Overridden by services with timers."""

    @abstractmethod
    async def _load_data(self) -> None:
        """Load data during initialization. Must be implemented by subclasses."""
        pass

    @abstractmethod
    async def _save_data(self) -> None:
        """Save data during shutdown. Must be implemented by subclasses."""
        pass
