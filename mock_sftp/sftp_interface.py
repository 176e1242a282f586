"""
paramiko adapter for the command handlers.

paramiko's SFTPServer decodes requests off the wire and calls an
SFTPServerInterface synchronously, expecting either a result object or an
SFTP status code back. MockSFTPServerInterface forwards each call to the
session's CommandHandlers and collects the single reply they send through
the Responder protocol, then converts it into what paramiko expects.
"""

import itertools
import logging

from paramiko import (
    SFTP_EOF,
    SFTP_FAILURE,
    SFTP_NO_SUCH_FILE,
    SFTP_OK,
    SFTPAttributes,
    SFTPHandle,
    SFTPServerInterface,
)

from .errors import EndOfStream, MockSFTPError, NotFound
from .modes import OpenMode
from .responder import FileAttributes, ListingEntry

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (NotFound, SFTP_NO_SUCH_FILE),
    (EndOfStream, SFTP_EOF),
)


def status_for(error: MockSFTPError) -> int:
    """Map a handler failure to an SFTP status code."""
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return SFTP_FAILURE


def to_sftp_attributes(attrs: FileAttributes, filename: str | None = None) -> SFTPAttributes:
    sftp_attrs = SFTPAttributes()
    sftp_attrs.st_mode = attrs.mode
    sftp_attrs.st_uid = attrs.uid
    sftp_attrs.st_gid = attrs.gid
    sftp_attrs.st_size = attrs.size
    sftp_attrs.st_atime = attrs.atime
    sftp_attrs.st_mtime = attrs.mtime
    if filename is not None:
        sftp_attrs.filename = filename
    return sftp_attrs


class ReplyCollector:
    """Responder that holds each reply until the adapter takes it.

    Status replies are stored as ints, everything else as the payload.
    """

    def __init__(self):
        self._replies: dict[int, object] = {}

    def acknowledge(self, request_id: int) -> None:
        self._replies[request_id] = SFTP_OK

    def fail(self, request_id: int, error: MockSFTPError) -> None:
        self._replies[request_id] = status_for(error)

    def return_handle(self, request_id: int, token: bytes) -> None:
        self._replies[request_id] = token

    def return_data(self, request_id: int, data: bytes) -> None:
        self._replies[request_id] = data

    def return_listing(self, request_id: int, entries: list[ListingEntry]) -> None:
        self._replies[request_id] = entries

    def return_attributes(self, request_id: int, attrs: FileAttributes) -> None:
        self._replies[request_id] = attrs

    def take(self, request_id: int):
        try:
            return self._replies.pop(request_id)
        except KeyError:
            logger.error("No reply recorded for request %d", request_id)
            return SFTP_FAILURE


class MockSFTPHandle(SFTPHandle):
    """Open file as paramiko sees it; carries the handle table token."""

    def __init__(self, interface: "MockSFTPServerInterface", token: bytes, flags: int = 0):
        super().__init__(flags)
        self.interface = interface
        self.token = token

    def read(self, offset, length):
        return self.interface.dispatch(self.interface.handlers.read, self.token, offset, length)

    def write(self, offset, data):
        return self.interface.dispatch(self.interface.handlers.write, self.token, offset, data)

    def close(self):
        self.interface.dispatch(self.interface.handlers.close, self.token)
        super().close()

    def stat(self):
        reply = self.interface.dispatch(self.interface.handlers.fstat, self.token)
        if isinstance(reply, int):
            return reply
        return to_sftp_attributes(reply)

    def chattr(self, attr):
        return SFTP_OK


class MockSFTPServerInterface(SFTPServerInterface):
    """SFTP subsystem for one session, backed by the mock server's namespace."""

    def __init__(self, server, *args, mock_server=None, **kwargs):
        super().__init__(server, *args, **kwargs)
        if mock_server is None:
            raise ValueError("MockSFTPServerInterface requires mock_server")
        self.mock_server = mock_server
        self.replies = ReplyCollector()
        self.handlers = mock_server.new_session(self.replies)
        self._request_ids = itertools.count(1)

    def dispatch(self, handler, *args):
        """Run one handler call and return its reply."""
        request_id = next(self._request_ids)
        handler(request_id, *args)
        return self.replies.take(request_id)

    def session_started(self):
        logger.debug("SFTP session started")

    def session_ended(self):
        self.handlers.end_session()
        logger.debug("SFTP session ended")

    def open(self, path, flags, attr):
        reply = self.dispatch(self.handlers.open_file, path, OpenMode.from_flags(flags))
        if isinstance(reply, int):
            return reply
        return MockSFTPHandle(self, reply, flags)

    def list_folder(self, path):
        # paramiko pages the listing itself, so the one-batch directory
        # cursor is drained here while the folder is opened.
        token = self.dispatch(self.handlers.open_directory, path)
        if isinstance(token, int):
            return token
        try:
            reply = self.dispatch(self.handlers.list_directory, token)
        finally:
            self.dispatch(self.handlers.close, token)
        if reply == SFTP_EOF:
            return []
        if isinstance(reply, int):
            return reply
        return [to_sftp_attributes(entry.attributes, entry.filename) for entry in reply]

    def stat(self, path):
        reply = self.dispatch(self.handlers.stat, path)
        if isinstance(reply, int):
            return reply
        return to_sftp_attributes(reply)

    def lstat(self, path):
        reply = self.dispatch(self.handlers.lstat, path)
        if isinstance(reply, int):
            return reply
        return to_sftp_attributes(reply)

    def remove(self, path):
        return self.dispatch(self.handlers.remove_file, path)

    def rename(self, oldpath, newpath):
        return self.dispatch(self.handlers.rename, oldpath, newpath)

    def posix_rename(self, oldpath, newpath):
        return self.dispatch(self.handlers.rename, oldpath, newpath)

    def mkdir(self, path, attr):
        return self.dispatch(self.handlers.make_directory, path)

    def rmdir(self, path):
        return self.dispatch(self.handlers.remove_directory, path)

    def chattr(self, path, attr):
        return self.dispatch(self.handlers.set_attributes, path)

    def canonicalize(self, path):
        reply = self.dispatch(self.handlers.real_path, path)
        if isinstance(reply, int):
            return path
        return reply[0].filename
