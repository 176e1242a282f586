import logging
import sys
from pathlib import Path

from .config import LogConfig

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(threadName)s - %(message)s"

PACKAGE_LOGGER = "mock_sftp"


def set_verbose(verbose: bool) -> None:
    """
    Toggle the mock server's own chatter.

    Verbose turns the package logger up to DEBUG so every handled request is
    logged; otherwise only warnings and errors from the server get through.
    paramiko's own loggers are left alone.
    """
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if verbose else logging.WARNING)


def _build_handlers(config: LogConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, mode="a", encoding="utf-8"))
    if config.console:
        handlers.append(logging.StreamHandler(sys.stderr))
    return handlers


def setup_logging(config: LogConfig) -> None:
    """
    Configure the root logger for the standalone server.

    Replaces any handlers already on the root logger with a file handler
    (when ``config.file`` is set, creating its directory) and/or a stderr
    handler. Unknown level names fall back to INFO. The ``mock_sftp``
    package logger follows the same level.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    for handler in _build_handlers(config):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
