"""
Per-session handle table.

Handles are 4-byte big-endian tokens wrapping a monotonically assigned ID.
IDs are never reused within a session, so a stale token for a closed handle
can never alias a newer one.
"""

import hashlib
import logging
import struct
from dataclasses import dataclass, field
from typing import BinaryIO

from .errors import InvalidHandle
from .modes import OpenMode

logger = logging.getLogger(__name__)

TOKEN_FORMAT = ">I"
TOKEN_SIZE = struct.calcsize(TOKEN_FORMAT)
MAX_HANDLE_ID = 0xFFFFFFFF


class UploadDigest:
    """Streaming SHA-256 and byte count for one upload."""

    def __init__(self):
        self._hash = hashlib.sha256()
        self.size = 0

    def update(self, data: bytes) -> None:
        self._hash.update(data)
        self.size += len(data)

    def hexdigest(self) -> str:
        return self._hash.hexdigest()


@dataclass
class HandleState:
    handle_id: int
    path: str
    is_directory: bool = False
    mode: OpenMode | None = None
    upload: UploadDigest | None = None
    backing: BinaryIO | None = None
    bytes_read: int = 0
    listed: bool = False
    token: bytes = field(default=b"", repr=False)


def encode_token(handle_id: int) -> bytes:
    return struct.pack(TOKEN_FORMAT, handle_id)


class HandleTable:
    """Open file and directory handles for one SFTP session."""

    def __init__(self):
        self._next_id = 0
        self._open: dict[int, HandleState] = {}

    def __len__(self) -> int:
        return len(self._open)

    def allocate(
        self,
        path: str,
        *,
        is_directory: bool = False,
        mode: OpenMode | None = None,
        backing: BinaryIO | None = None,
    ) -> bytes:
        """Open a handle on ``path`` and return its token."""
        handle_id = self._next_id
        if handle_id > MAX_HANDLE_ID:
            raise InvalidHandle(handle_id, "Handle space exhausted")
        self._next_id += 1

        state = HandleState(
            handle_id=handle_id,
            path=path,
            is_directory=is_directory,
            mode=mode,
            backing=backing,
            token=encode_token(handle_id),
        )
        if mode is not None and mode.writable:
            state.upload = UploadDigest()
        self._open[handle_id] = state
        logger.debug("Allocated handle %d for %s", handle_id, path)
        return state.token

    def validate(self, token: bytes) -> int:
        """Return the handle ID for ``token`` if it names an open handle."""
        if not isinstance(token, bytes) or len(token) != TOKEN_SIZE:
            raise InvalidHandle(token, "Malformed handle")
        (handle_id,) = struct.unpack(TOKEN_FORMAT, token)
        if handle_id not in self._open:
            raise InvalidHandle(token, "Handle is not open")
        return handle_id

    def get(self, token: bytes) -> HandleState:
        return self._open[self.validate(token)]

    def release(self, handle_id: int) -> HandleState | None:
        """Close a handle. Releasing twice returns None the second time."""
        state = self._open.pop(handle_id, None)
        if state is None:
            return None
        if state.backing is not None:
            try:
                state.backing.close()
            except OSError as e:
                logger.warning("Could not close backing file for %s: %s", state.path, e)
        logger.debug("Released handle %d (%s)", handle_id, state.path)
        return state

    def release_all(self) -> list[HandleState]:
        return [self.release(handle_id) for handle_id in list(self._open)]
