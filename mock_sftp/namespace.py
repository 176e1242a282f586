"""
In-memory namespace for the mock SFTP server.

The namespace is a tree of Directory nodes whose leaves are FileMarker nodes.
A FileMarker is either an opaque placeholder or a reference to a real file on
disk that reads are served from. The root is always a Directory.

Snapshots use a nested-mapping grammar::

    {"foo": {"bar": True, "baz": {}}, "fixture.bin": "/srv/fixtures/a.bin"}

A mapping is a directory, ``True`` is a file placeholder and a string (or
path-like) is a file backed by that real path.
"""

from __future__ import annotations

import copy
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import InvalidPath, MockSFTPError, NotADirectory, NotFound

logger = logging.getLogger(__name__)


@dataclass
class FileMarker:
    """A file leaf. ``source`` is the real backing file, if any."""

    source: Path | None = None


@dataclass
class Directory:
    entries: dict[str, Directory | FileMarker] = field(default_factory=dict)


Node = Directory | FileMarker


@dataclass(frozen=True)
class Found:
    node: Node


@dataclass(frozen=True)
class Missing:
    path: str
    error: MockSFTPError


Lookup = Found | Missing


def split_path(path: str) -> list[str]:
    """Split a path into segments, dropping empty and "." segments."""
    return [segment for segment in path.split("/") if segment not in ("", ".")]


def build_tree(mapping: Mapping[str, Any]) -> Directory:
    """Build a Directory from the snapshot grammar."""
    directory = Directory()
    for name, value in mapping.items():
        if not isinstance(name, str) or not name or "/" in name:
            raise ValueError(f"Invalid entry name in snapshot: {name!r}")
        if isinstance(value, Mapping):
            directory.entries[name] = build_tree(value)
        elif value is True:
            directory.entries[name] = FileMarker()
        elif isinstance(value, (str, os.PathLike)):
            directory.entries[name] = FileMarker(source=Path(value))
        else:
            raise ValueError(f"Invalid snapshot value for {name!r}: {value!r}")
    return directory


def dump_tree(directory: Directory) -> dict[str, Any]:
    """Inverse of build_tree."""
    result: dict[str, Any] = {}
    for name, node in directory.entries.items():
        if isinstance(node, Directory):
            result[name] = dump_tree(node)
        elif node.source is None:
            result[name] = True
        else:
            result[name] = str(node.source)
    return result


class NamespaceStore:
    """
    Owns the directory tree and the snapshot it is reset to.

    ``resolve``, ``set`` and ``unset`` are the only mutation surface;
    command handlers compose them. The store is not locked itself: callers
    serialize access (see handlers.operation).
    """

    def __init__(self, snapshot: Mapping[str, Any] | None = None):
        self._snapshot = build_tree(snapshot or {})
        self.root = copy.deepcopy(self._snapshot)

    def lookup(self, path: str) -> Lookup:
        """Walk ``path`` from the root and report what was found."""
        node: Node = self.root
        walked: list[str] = []
        for segment in split_path(path):
            if not isinstance(node, Directory):
                return Missing(path, NotADirectory("/".join(walked)))
            child = node.entries.get(segment)
            if child is None:
                return Missing(path, NotFound(path))
            walked.append(segment)
            node = child
        return Found(node)

    def resolve(self, path: str) -> Node:
        result = self.lookup(path)
        if isinstance(result, Missing):
            raise result.error
        return result.node

    def exists(self, path: str) -> bool:
        return isinstance(self.lookup(path), Found)

    def _parent(self, path: str) -> tuple[Directory, str]:
        segments = split_path(path)
        if not segments:
            raise InvalidPath(path, "Cannot replace the root directory")
        parent_path = "/".join(segments[:-1])
        parent = self.resolve(parent_path)
        if not isinstance(parent, Directory):
            raise NotADirectory(parent_path)
        return parent, segments[-1]

    def parent_of(self, path: str) -> Directory:
        """Resolve the directory that would hold ``path``'s leaf."""
        return self._parent(path)[0]

    def set(self, path: str, value: Node) -> None:
        parent, name = self._parent(path)
        parent.entries[name] = value
        logger.debug("namespace set %s -> %s", path, type(value).__name__)

    def unset(self, path: str) -> None:
        """Remove the leaf of ``path``. A missing leaf is not an error."""
        parent, name = self._parent(path)
        if parent.entries.pop(name, None) is not None:
            logger.debug("namespace unset %s", path)

    def restore(self) -> None:
        """Replace the tree with a fresh copy of the configured snapshot."""
        self.root = copy.deepcopy(self._snapshot)

    def snapshot(self) -> dict[str, Any]:
        """Current tree in snapshot grammar."""
        return dump_tree(self.root)
