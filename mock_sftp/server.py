"""
Mock SFTP server lifecycle.

MockSFTPServer listens on a TCP socket, runs an SSH transport for every
connection and serves the ``sftp`` subsystem from one shared namespace store.
Each SFTP session gets a fresh handle table. Test code drives the server
through ``reset()`` and the observation queries.

Example::

    with MockSFTPServer(ServerConfig(port=0), snapshot={"foo": {"bar": True}}) as server:
        ...  # connect with paramiko.SFTPClient to ("127.0.0.1", server.port)
        assert server.paths_opened() == ["foo/bar"]
"""

import contextlib
import logging
import socket
import threading
from collections.abc import Mapping
from typing import Any

import paramiko
from paramiko import (
    AUTH_FAILED,
    AUTH_SUCCESSFUL,
    OPEN_FAILED_ADMINISTRATIVELY_PROHIBITED,
    OPEN_SUCCEEDED,
    RSAKey,
    SFTPServer,
    Transport,
)

from .config import AppConfig, ServerConfig
from .handlers import CommandHandlers
from .logger import PACKAGE_LOGGER, set_verbose
from .namespace import NamespaceStore
from .observations import ObservationLog
from .responder import Responder
from .sftp_interface import MockSFTPServerInterface

logger = logging.getLogger(__name__)


class PasswordAuthServer(paramiko.ServerInterface):
    """SSH server policy: one username/password pair, session channels only."""

    def __init__(self, username: str, password: str):
        self.username = username
        self.password = password

    def check_auth_password(self, username, password):
        if username == self.username and password == self.password:
            logger.debug("Client authenticated as %s", username)
            return AUTH_SUCCESSFUL
        logger.debug("Rejected password authentication for %s", username)
        return AUTH_FAILED

    def get_allowed_auths(self, username):
        return "password"

    def check_channel_request(self, kind, chanid):
        if kind == "session":
            return OPEN_SUCCEEDED
        return OPEN_FAILED_ADMINISTRATIVELY_PROHIBITED


class MockSFTPServer:
    """
    SFTP test double with an in-memory namespace and an observation log.

    Args:
        config: Listening endpoint and credentials.
        snapshot: Initial namespace in snapshot grammar (see namespace.py).
        verbose: Log every handled request at DEBUG.
    """

    def __init__(
        self,
        config: ServerConfig | None = None,
        snapshot: Mapping[str, Any] | None = None,
        verbose: bool = False,
    ):
        self.config = config or ServerConfig()
        self.store = NamespaceStore(snapshot)
        self.log = ObservationLog()
        self.verbose = verbose
        self._lock = threading.RLock()
        self._host_key: RSAKey | None = None
        self._socket: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._transports: list[Transport] = []
        self._transports_lock = threading.Lock()
        # A level already set by setup_logging is kept unless verbose is requested.
        if verbose or logging.getLogger(PACKAGE_LOGGER).level == logging.NOTSET:
            set_verbose(verbose)

    @classmethod
    def from_config(cls, app_config: AppConfig) -> "MockSFTPServer":
        return cls(app_config.server, app_config.snapshot, app_config.verbose)

    # -- lifecycle -----------------------------------------------------------

    @property
    def port(self) -> int:
        """Actual listening port (useful when configured with port 0)."""
        if self._socket is None:
            return self.config.port
        return self._socket.getsockname()[1]

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _load_host_key(self) -> RSAKey:
        if self.config.host_key_file:
            logger.debug("Loading host key from %s", self.config.host_key_file)
            return RSAKey.from_private_key_file(self.config.host_key_file)
        logger.debug("Generating RSA host key")
        return RSAKey.generate(2048)

    def start(self) -> None:
        """Bind the listening socket and start accepting connections."""
        if self.running:
            raise RuntimeError("Mock SFTP server already started")
        if self._host_key is None:
            self._host_key = self._load_host_key()

        server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            server_socket.bind((self.config.host, self.config.port))
            server_socket.listen(5)
        except OSError:
            server_socket.close()
            raise
        server_socket.settimeout(0.5)
        self._socket = server_socket
        self._stop_event.clear()

        self._thread = threading.Thread(
            target=self._accept_loop, name="mock-sftp-accept", daemon=True
        )
        self._thread.start()
        logger.info("Listening on %s:%d", self.config.host, self.port)

    def _accept_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                conn, addr = self._socket.accept()
            except TimeoutError:
                continue
            except OSError:
                break
            logger.info("Client connected from %s:%d", addr[0], addr[1])
            # Negotiation blocks until the client finishes its handshake.
            threading.Thread(
                target=self._start_transport,
                args=(conn,),
                name=f"mock-sftp-negotiate-{addr[1]}",
                daemon=True,
            ).start()

    def _start_transport(self, conn: socket.socket) -> None:
        transport = Transport(conn)
        transport.add_server_key(self._host_key)
        transport.set_subsystem_handler(
            "sftp", SFTPServer, MockSFTPServerInterface, mock_server=self
        )
        with self._transports_lock:
            if self._stop_event.is_set():
                transport.close()
                return
            # ident stays None until negotiation starts the transport thread.
            self._transports = [
                t for t in self._transports if t.is_active() or t.ident is None
            ]
            self._transports.append(transport)
        try:
            transport.start_server(
                server=PasswordAuthServer(self.config.username, self.config.password)
            )
        except (paramiko.SSHException, EOFError, OSError) as e:
            logger.warning("SSH negotiation failed: %s", e)
            transport.close()

    def stop(self) -> None:
        """Stop accepting connections and close every live transport."""
        self._stop_event.set()
        if self._socket is not None:
            with contextlib.suppress(OSError):
                self._socket.close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        with self._transports_lock:
            transports, self._transports = self._transports, []
        for transport in transports:
            transport.close()
        self._socket = None
        self._thread = None
        logger.info("Mock SFTP server stopped")

    def __enter__(self) -> "MockSFTPServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # -- sessions ------------------------------------------------------------

    def new_session(self, responder: Responder) -> CommandHandlers:
        """Command handlers for a new SFTP session: fresh handles, shared namespace."""
        return CommandHandlers(self.store, self.log, responder, lock=self._lock)

    # -- test surface ----------------------------------------------------------

    def reset(self) -> None:
        """Restore the initial snapshot and clear every observation."""
        with self._lock:
            self.store.restore()
            self.log.clear()
        logger.debug("Namespace restored and observations cleared")

    def namespace_snapshot(self) -> dict[str, Any]:
        with self._lock:
            return self.store.snapshot()

    def paths_opened(self) -> list[str]:
        return self.log.paths_opened()

    def computed_size(self, path: str) -> int:
        """Size of the completed upload to ``path``; raises NeverObserved otherwise."""
        return self.log.computed_size(path)

    def computed_digest(self, path: str) -> str:
        """Hex SHA-256 of the completed upload to ``path``; raises NeverObserved otherwise."""
        return self.log.computed_digest(path)

    def renamed_files(self) -> dict[str, str]:
        return self.log.renamed_files()

    def directories_created(self) -> list[str]:
        return self.log.directories_created()

    def directories_removed(self) -> list[str]:
        return self.log.directories_removed()
