"""
JSON persistence utilities.

Every service stores its settings and histories as small JSON documents.
Writes go to a temporary file first and are renamed into place.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class JSONRepository:
    """JSON persistence with consistent error handling and atomic writes."""

    @staticmethod
    def load_json(
        path: Path, default: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Load a JSON object from file.

        Args:
            path: Path to JSON file
            default: Value returned if the file is missing or unreadable

        Returns:
            Dictionary containing JSON data or default value
        """
        if default is None:
            default = {}

        if not path.exists():
            logger.debug(f"JSON file does not exist: {path}")
            return default

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON file {path}: {e}")
            return default
        except OSError as e:
            logger.error(f"Unexpected error loading JSON file {path}: {e}")
            return default

        if not isinstance(data, dict):
            logger.warning(f"JSON file does not contain an object: {path}")
            return default

        logger.debug(f"Successfully loaded JSON from {path}")
        return data

    @staticmethod
    def save_json(path: Path, data: Dict[str, Any], *, atomic: bool = True) -> bool:
        """
        Save a JSON object to file.

        Args:
            path: Path to save JSON file
            data: Dictionary to save as JSON
            atomic: If True, write to temp file then rename

        Returns:
            True if successful, False otherwise
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)

            if atomic:
                temp_file = path.with_suffix(".tmp")
                with open(temp_file, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                temp_file.replace(path)
            else:
                with open(path, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)

            logger.debug(f"Successfully saved JSON to {path}")
            return True

        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save JSON file {path}: {e}")
            return False

    @staticmethod
    def load_records(
        path: Path,
        from_dict_fn: Callable[[Dict[str, Any]], T],
        key: str = "items",
    ) -> List[T]:
        """
        Load a list of records stored under ``key`` and convert each one.

        Records that fail to convert are skipped and logged.
        """
        raw = JSONRepository.load_json(path, {}).get(key, [])
        if not isinstance(raw, list):
            logger.warning(f"Expected a list under '{key}' in {path}")
            return []

        records: List[T] = []
        for item in raw:
            if not isinstance(item, dict):
                logger.warning(f"Skipping non-dict record in {path}")
                continue
            try:
                records.append(from_dict_fn(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed record in {path}: {e}")

        logger.debug(f"Loaded {len(records)} records from {path}")
        return records

    @staticmethod
    def save_records(
        path: Path,
        records: Iterable[Any],
        key: str = "items",
        limit: Optional[int] = None,
    ) -> bool:
        """Serialize records with their ``to_dict`` and save them under ``key``.

        When ``limit`` is given only the most recent ``limit`` records are kept.
        """
        items = [record.to_dict() for record in records]
        if limit is not None:
            items = items[-limit:]
        return JSONRepository.save_json(path, {key: items})

    @staticmethod
    def delete(path: Path) -> bool:
        """Remove a stored file if present."""
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
