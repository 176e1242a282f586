"""
Observation log: what the clients did, for test assertions.

Every query returns a copy so test code cannot mutate the log.
"""

import threading
from dataclasses import dataclass

from .errors import NeverObserved


@dataclass(frozen=True)
class UploadRecord:
    digest: str
    size: int


class ObservationLog:
    """
    Append-only record of opens, uploads, renames and directory changes.

    Thread-safe; the handler layer additionally holds the namespace lock while
    recording so a mutation and its log entry are observed together.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._paths_opened: list[str] = []
        self._uploads: dict[str, UploadRecord] = {}
        self._renames: dict[str, str] = {}
        self._directories_created: list[str] = []
        self._directories_removed: list[str] = []

    def record_open(self, path: str) -> None:
        with self._lock:
            self._paths_opened.append(path)

    def record_upload(self, path: str, digest: str, size: int) -> None:
        with self._lock:
            self._uploads[path] = UploadRecord(digest=digest, size=size)

    def record_rename(self, old_path: str, new_path: str) -> None:
        with self._lock:
            self._renames[old_path] = new_path

    def record_directory_created(self, path: str) -> None:
        with self._lock:
            self._directories_created.append(path)

    def record_directory_removed(self, path: str) -> None:
        with self._lock:
            self._directories_removed.append(path)

    def clear(self) -> None:
        with self._lock:
            self._paths_opened.clear()
            self._uploads.clear()
            self._renames.clear()
            self._directories_created.clear()
            self._directories_removed.clear()

    def paths_opened(self) -> list[str]:
        with self._lock:
            return list(self._paths_opened)

    def upload(self, path: str) -> UploadRecord:
        """
        Return the completed upload recorded for ``path``.

        Raises:
            NeverObserved: If no upload to ``path`` was ever closed.
        """
        with self._lock:
            record = self._uploads.get(path)
        if record is None:
            raise NeverObserved(path)
        return record

    def computed_size(self, path: str) -> int:
        return self.upload(path).size

    def computed_digest(self, path: str) -> str:
        return self.upload(path).digest

    def renamed_files(self) -> dict[str, str]:
        with self._lock:
            return dict(self._renames)

    def directories_created(self) -> list[str]:
        with self._lock:
            return list(self._directories_created)

    def directories_removed(self) -> list[str]:
        with self._lock:
            return list(self._directories_removed)
