#!/usr/bin/env python3
"""
Persistence backends for keystroke statistics.

The engine writes the persisted snapshot after every mutation, so backends
must complete the write before returning.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .errors import PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = Path.home() / ".keystats" / "key_stats.json"


class StatsStorage(ABC):
    """Abstract storage for the persisted statistics document."""

    @abstractmethod
    def load(self) -> Optional[Dict[str, Any]]:
        """
        Read the persisted document.

        Returns:
            The stored dictionary, or None if nothing has been stored

        Raises:
            PersistenceError: If stored data exists but cannot be read
        """
        pass

    @abstractmethod
    def save(self, data: Dict[str, Any]) -> None:
        """
        Write the persisted document synchronously.

        Raises:
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        pass


class MemoryStorage(StatsStorage):
    """Keeps the persisted document in memory (headless hosts and tests)."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data = json.loads(json.dumps(initial)) if initial is not None else None
        self.save_count = 0

    def load(self) -> Optional[Dict[str, Any]]:
        if self._data is None:
            return None
        return json.loads(json.dumps(self._data))

    def save(self, data: Dict[str, Any]) -> None:
        self._data = json.loads(json.dumps(data))
        self.save_count += 1

    def clear(self) -> None:
        self._data = None


class JsonFileStorage(StatsStorage):
    """
    Stores the document as a JSON file.

    Writes go to a temporary file in the same directory that then replaces
    the target, so a crash never leaves a truncated file behind.
    """

    def __init__(self, file_path: Union[str, Path] = DEFAULT_STATE_FILE):
        self.file_path = Path(file_path).expanduser()

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.file_path.exists():
            return None

        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not read {self.file_path}: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceError(f"Unexpected content in {self.file_path}: {type(data).__name__}")

        return data

    def save(self, data: Dict[str, Any]) -> None:
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.file_path.name}.", suffix=".tmp", dir=str(self.file_path.parent)
            )
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(data, f, ensure_ascii=False)
                os.replace(tmp_path, self.file_path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Could not write {self.file_path}: {e}") from e

    def clear(self) -> None:
        try:
            if self.file_path.exists():
                self.file_path.unlink()
        except OSError as e:
            raise PersistenceError(f"Could not remove {self.file_path}: {e}") from e


def create_storage(config: Dict[str, Any]) -> StatsStorage:
    """
    Create a storage backend from the 'storage' config section.

    A state_file of null (or the string 'memory') selects in-memory storage.
    """
    state_file = config.get('state_file', str(DEFAULT_STATE_FILE))
    if state_file is None or state_file == 'memory':
        return MemoryStorage()
    return JsonFileStorage(state_file)
