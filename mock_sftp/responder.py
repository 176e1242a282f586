"""
Boundary with the transport.

Command handlers answer every request through a Responder. The paramiko
adapter in sftp_interface.py implements it; unit tests use a MagicMock with
``spec=Responder``.
"""

from __future__ import annotations

import stat
import time
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from .errors import MockSFTPError

# Content served for reads of files with no real backing.
SYNTHETIC_PAYLOAD = b"bar"
SYNTHETIC_SIZE = len(SYNTHETIC_PAYLOAD)

# get-real-path answers this for every input.
CANNED_REAL_PATH = "/tmp/foo.txt"

FILE_MODE = stat.S_IFREG | stat.S_IRWXU | stat.S_IRWXG | stat.S_IRWXO
DIRECTORY_MODE = stat.S_IFDIR | stat.S_IRWXU | stat.S_IRWXG | stat.S_IRWXO


@dataclass
class FileAttributes:
    mode: int
    uid: int = 0
    gid: int = 0
    size: int = 0
    atime: int = field(default_factory=lambda: int(time.time()))
    mtime: int = field(default_factory=lambda: int(time.time()))

    @classmethod
    def synthetic(cls, mode: int = FILE_MODE) -> FileAttributes:
        """Fixed attributes reported for every stat."""
        now = int(time.time())
        return cls(mode=mode, uid=0, gid=0, size=SYNTHETIC_SIZE, atime=now, mtime=now)


@dataclass
class ListingEntry:
    filename: str
    attributes: FileAttributes

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.attributes.mode)

    @property
    def longname(self) -> str:
        """``ls -l`` style line for the entry."""
        attrs = self.attributes
        date = time.strftime("%b %d %Y", time.localtime(attrs.mtime))
        return (
            f"{stat.filemode(attrs.mode)} 1 {attrs.uid} {attrs.gid} "
            f"{attrs.size} {date} {self.filename}"
        )


@runtime_checkable
class Responder(Protocol):
    """Response primitives a transport provides to the command handlers.

    Each request must receive exactly one of these calls.
    """

    def acknowledge(self, request_id: int) -> None:
        """Report success with no payload."""
        ...

    def fail(self, request_id: int, error: MockSFTPError) -> None:
        """Report failure. EndOfStream is reported through here too."""
        ...

    def return_handle(self, request_id: int, token: bytes) -> None:
        ...

    def return_data(self, request_id: int, data: bytes) -> None:
        ...

    def return_listing(self, request_id: int, entries: list[ListingEntry]) -> None:
        ...

    def return_attributes(self, request_id: int, attrs: FileAttributes) -> None:
        ...
