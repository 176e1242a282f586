"""
Command handlers for the mock SFTP server.

One CommandHandlers instance serves one SFTP session. Each public method maps
to one remote request and answers it through the session's Responder exactly
once. Namespace and handle failures never escape: the ``operation`` decorator
turns them into ``Responder.fail``.

The namespace store and observation log may be shared between sessions, so
every operation runs under a lock supplied by the owning server.
"""

from __future__ import annotations

import logging
import posixpath
import threading
from functools import wraps

from .errors import (
    AlreadyExists,
    EndOfStream,
    InvalidHandle,
    InvalidPath,
    IsADirectory,
    MockSFTPError,
    NotADirectory,
    ReadFailure,
    ServerFailure,
)
from .handles import HandleTable
from .modes import OpenMode
from .namespace import Directory, FileMarker, Found, NamespaceStore, split_path
from .observations import ObservationLog
from .responder import (
    CANNED_REAL_PATH,
    DIRECTORY_MODE,
    FILE_MODE,
    SYNTHETIC_PAYLOAD,
    FileAttributes,
    ListingEntry,
    Responder,
)

logger = logging.getLogger(__name__)


def operation(fn):
    """Decorator for command handlers - serializes access and answers every request exactly once."""
    name = fn.__name__

    @wraps(fn)
    def wrapper(self, request_id, *args, **kwargs):
        with self._lock:
            try:
                fn(self, request_id, *args, **kwargs)
                logger.debug("%s: OK", name)
            except EndOfStream as exc:
                logger.debug("%s: EOF - %s", name, exc.path)
                self.responder.fail(request_id, exc)
            except MockSFTPError as exc:
                logger.debug("%s: FAIL - %s", name, exc)
                self.responder.fail(request_id, exc)
            except Exception as exc:
                logger.exception("%s: unexpected error", name)
                target = str(args[0]) if args else ""
                self.responder.fail(request_id, ServerFailure(target, str(exc)))

    return wrapper


def directory_target(path: str) -> str:
    """Trim trailing separators from a make/remove-directory target."""
    target = path.rstrip("/")
    if target in ("", ".", ".."):
        raise InvalidPath(path, "Invalid directory path")
    return target


def rename_target(path: str) -> str:
    """Resolve a rename destination against the root, refusing escapes."""
    relative = posixpath.normpath(path.lstrip("/") or ".")
    if relative == ".." or relative.startswith("../"):
        raise InvalidPath(path, "Rename destination escapes the root")
    return relative


class CommandHandlers:
    """Interprets SFTP requests against a namespace store and handle table."""

    def __init__(
        self,
        store: NamespaceStore,
        log: ObservationLog,
        responder: Responder,
        handles: HandleTable | None = None,
        lock: threading.RLock | None = None,
    ):
        self.store = store
        self.log = log
        self.responder = responder
        self.handles = handles if handles is not None else HandleTable()
        self._lock = lock if lock is not None else threading.RLock()

    # -- open / read / write / close ---------------------------------------

    @operation
    def open_directory(self, request_id: int, path: str) -> None:
        node = self.store.resolve(path)
        if not isinstance(node, Directory):
            raise NotADirectory(path)
        token = self.handles.allocate("/".join(split_path(path)), is_directory=True)
        self.responder.return_handle(request_id, token)

    def _prepare_open(self, path: str, mode: OpenMode) -> FileMarker:
        """Apply open-mode semantics to the namespace and return the file node."""
        result = self.store.lookup(path)

        if mode.exclusive:
            if isinstance(result, Found):
                raise AlreadyExists(path)
            marker = FileMarker()
            self.store.set(path, marker)
            return marker

        if isinstance(result, Found):
            if isinstance(result.node, Directory):
                raise IsADirectory(path)
            if mode.truncate:
                marker = FileMarker()
                self.store.set(path, marker)
                return marker
            return result.node

        if not mode.create:
            raise result.error
        marker = FileMarker()
        self.store.set(path, marker)
        return marker

    @operation
    def open_file(self, request_id: int, path: str, mode: OpenMode) -> None:
        logger.debug("open %s (%s)", path, mode)
        marker = self._prepare_open(path, mode)

        backing = None
        if mode.readable and marker.source is not None:
            try:
                backing = open(marker.source, "rb")
            except OSError as e:
                raise ReadFailure(path, f"Cannot open backing file: {e}") from e

        token = self.handles.allocate(path, mode=mode, backing=backing)
        self.log.record_open(path)
        self.responder.return_handle(request_id, token)

    @operation
    def write(self, request_id: int, token: bytes, offset: int, data: bytes) -> None:
        state = self.handles.get(token)
        if state.upload is None:
            raise InvalidHandle(token, "Handle is not open for writing")
        state.upload.update(data)
        logger.debug("Write to %s at offset %d: %d bytes", state.path, offset, len(data))
        self.responder.acknowledge(request_id)

    @operation
    def read(self, request_id: int, token: bytes, offset: int, length: int) -> None:
        state = self.handles.get(token)
        if state.is_directory or state.mode is None or not state.mode.readable:
            raise InvalidHandle(token, "Handle is not open for reading")

        if state.backing is not None:
            try:
                state.backing.seek(offset)
                chunk = state.backing.read(length)
            except OSError as e:
                raise ReadFailure(state.path, str(e)) from e
        elif state.bytes_read >= len(SYNTHETIC_PAYLOAD):
            chunk = b""
        else:
            chunk = SYNTHETIC_PAYLOAD[offset : offset + length]

        if not chunk:
            raise EndOfStream(state.path)
        state.bytes_read += len(chunk)
        logger.debug("Read from %s at offset %d, length %d", state.path, offset, length)
        self.responder.return_data(request_id, chunk)

    @operation
    def close(self, request_id: int, token: bytes) -> None:
        try:
            handle_id = self.handles.validate(token)
        except InvalidHandle:
            logger.debug("close of unknown handle %r ignored", token)
            self.responder.acknowledge(request_id)
            return

        state = self.handles.release(handle_id)
        if state is not None and state.upload is not None:
            self.log.record_upload(state.path, state.upload.hexdigest(), state.upload.size)
            logger.debug("Recorded upload of %s (%d bytes)", state.path, state.upload.size)
        self.responder.acknowledge(request_id)

    # -- directories -------------------------------------------------------

    @operation
    def list_directory(self, request_id: int, token: bytes) -> None:
        state = self.handles.get(token)
        if not state.is_directory:
            raise InvalidHandle(token, "Handle is not a directory")
        if state.listed:
            raise EndOfStream(state.path)

        node = self.store.resolve(state.path)
        if not isinstance(node, Directory):
            raise NotADirectory(state.path)
        state.listed = True

        entries = [
            ListingEntry(
                filename=name,
                attributes=FileAttributes.synthetic(
                    DIRECTORY_MODE if isinstance(child, Directory) else FILE_MODE
                ),
            )
            for name, child in node.entries.items()
        ]
        self.responder.return_listing(request_id, entries)

    @operation
    def make_directory(self, request_id: int, path: str) -> None:
        target = directory_target(path)
        # An existing node is replaced; a directory loses its contents.
        try:
            self.store.set(target, Directory())
        except NotADirectory as e:
            raise AlreadyExists(target, "Parent is not a directory") from e
        self.log.record_directory_created(target)
        self.responder.acknowledge(request_id)

    @operation
    def remove_directory(self, request_id: int, path: str) -> None:
        # Emptiness is not checked; a non-empty directory goes with its contents.
        target = directory_target(path)
        result = self.store.lookup(target)
        if isinstance(result, Found):
            if not isinstance(result.node, Directory):
                raise NotADirectory(target)
            self.store.unset(target)
        self.log.record_directory_removed(target)
        self.responder.acknowledge(request_id)

    # -- files -------------------------------------------------------------

    @operation
    def remove_file(self, request_id: int, path: str) -> None:
        node = self.store.resolve(path)
        if isinstance(node, Directory):
            raise IsADirectory(path)
        self.store.unset(path)
        self.responder.acknowledge(request_id)

    @operation
    def rename(self, request_id: int, old_path: str, new_path: str) -> None:
        destination = rename_target(new_path)
        node = self.store.resolve(old_path)

        source_segments = split_path(old_path)
        destination_segments = split_path(destination)
        if not source_segments:
            raise InvalidPath(old_path, "Cannot rename the root directory")
        if destination_segments[: len(source_segments)] == source_segments and (
            len(destination_segments) > len(source_segments)
        ):
            raise InvalidPath(new_path, "Cannot move a directory into itself")

        # Check the destination parent before touching the source.
        self.store.parent_of(destination)
        self.store.unset(old_path)
        self.store.set(destination, node)
        self.log.record_rename(old_path, new_path)
        self.responder.acknowledge(request_id)

    # -- attributes --------------------------------------------------------

    @operation
    def stat(self, request_id: int, path: str) -> None:
        self.store.resolve(path)
        self.responder.return_attributes(request_id, FileAttributes.synthetic())

    @operation
    def lstat(self, request_id: int, path: str) -> None:
        self.store.resolve(path)
        self.responder.return_attributes(request_id, FileAttributes.synthetic())

    @operation
    def fstat(self, request_id: int, token: bytes) -> None:
        self.handles.get(token)
        self.responder.return_attributes(request_id, FileAttributes.synthetic())

    @operation
    def set_attributes(self, request_id: int, path: str) -> None:
        """Accepted and ignored."""
        self.store.resolve(path)
        self.responder.acknowledge(request_id)

    @operation
    def real_path(self, request_id: int, path: str) -> None:
        # Canned answer, not a canonicalization of ``path``.
        entry = ListingEntry(filename=CANNED_REAL_PATH, attributes=FileAttributes.synthetic())
        self.responder.return_listing(request_id, [entry])

    # -- session -----------------------------------------------------------

    def end_session(self) -> None:
        """Release every handle still open. Unfinished uploads are not recorded."""
        with self._lock:
            released = self.handles.release_all()
        if released:
            logger.debug("Session ended with %d open handle(s)", len(released))
