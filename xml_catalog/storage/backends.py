"""
Key/value text storage backends for the overlay store.

The overlay store keeps one JSON blob under a fixed key. Backends decide where
that blob lives: in process memory (tests, throwaway sessions) or in a file per
key under a directory, replaced atomically on every write.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

from ..interfaces import StorageBackend
from ..exceptions import StorageError


class InMemoryStorageBackend(StorageBackend):
    """Dictionary-backed storage; contents live as long as the instance."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def write(self, key: str, text: str) -> None:
        self._data[key] = text

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class FileStorageBackend(StorageBackend):
    """
    Stores each key as `<key>.json` under a directory.

    Writes go to a temporary file in the same directory which then replaces the
    target with os.replace, so a reader never observes a half-written blob.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory).expanduser()
        self.logger = logging.getLogger(__name__)

    def path_for(self, key: str) -> Path:
        if not key or os.sep in key or (os.altsep and os.altsep in key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding='utf-8')
        except OSError as e:
            raise StorageError(f"Failed to read storage file {path}: {e}", str(path))

    def write(self, key: str, text: str) -> None:
        path = self.path_for(key)
        temp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(prefix=f".{key}.", suffix='.tmp', dir=str(self.directory))
            with os.fdopen(fd, 'w', encoding='utf-8') as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, path)
            temp_name = None
        except OSError as e:
            raise StorageError(f"Failed to write storage file {path}: {e}", str(path))
        finally:
            if temp_name and os.path.exists(temp_name):
                os.remove(temp_name)
        self.logger.debug(f"Wrote {len(text)} characters to {path}")

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"Failed to delete storage file {path}: {e}", str(path))
