"""
Shared pytest fixtures for mock SFTP server tests.
"""

import copy
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from mock_sftp.handlers import CommandHandlers
from mock_sftp.namespace import NamespaceStore
from mock_sftp.observations import ObservationLog
from mock_sftp.responder import Responder

INITIAL_STRUCTURE = {
    "foo": {
        "bar": True,
        "baz": {},
    },
    "corge": {
        "frotz": {
            "grault": True,
        },
    },
    "outer": {
        "inner": {},
    },
}


@pytest.fixture
def initial_structure() -> dict:
    """A fresh copy of the namespace used throughout the tests."""
    return copy.deepcopy(INITIAL_STRUCTURE)


@pytest.fixture
def store(initial_structure: dict) -> NamespaceStore:
    return NamespaceStore(initial_structure)


@pytest.fixture
def observation_log() -> ObservationLog:
    return ObservationLog()


@pytest.fixture
def responder() -> MagicMock:
    """Mocked transport response primitives."""
    return MagicMock(spec=Responder)


@pytest.fixture
def handlers(
    store: NamespaceStore, observation_log: ObservationLog, responder: MagicMock
) -> CommandHandlers:
    return CommandHandlers(store, observation_log, responder)


@pytest.fixture
def fixture_file(tmp_path: Path) -> Generator[Path, None, None]:
    """
    A real file on disk for real-file-backed namespace entries.

    Contains the bytes b"real fixture content".
    """
    path = tmp_path / "fixture.bin"
    path.write_bytes(b"real fixture content")
    yield path


def returned_handle(responder: MagicMock) -> bytes:
    """Token from the most recent return_handle call."""
    return responder.return_handle.call_args[0][1]


def failure(responder: MagicMock):
    """Error from the most recent fail call."""
    return responder.fail.call_args[0][1]
