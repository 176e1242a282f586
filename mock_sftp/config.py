import configparser
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 4000
    username: str = "foo"
    password: str = "bar"
    host_key_file: str | None = None  # RSA private key; generated when unset


@dataclass
class LogConfig:
    level: str = "INFO"
    file: str = ""
    console: bool = True


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LogConfig = field(default_factory=LogConfig)
    snapshot: dict[str, Any] = field(default_factory=dict)
    verbose: bool = False


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _parse_int(section: str, key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(
            f"Invalid {key} value in [{section}]: '{value}' - must be an integer"
        )


def load_snapshot(snapshot_path: str) -> dict[str, Any]:
    """
    Load an initial namespace snapshot from a JSON file.

    Args:
        snapshot_path: Path to a JSON document whose top level is an object.

    Returns:
        The nested snapshot mapping.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid JSON or not an object.
    """
    path = Path(snapshot_path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {snapshot_path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in snapshot file {snapshot_path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Snapshot file {snapshot_path} must contain a JSON object")
    return data


def load_config(config_path: str | None = None, **cli_args) -> AppConfig:
    """
    Load configuration from an INI file and/or CLI arguments.
    CLI arguments take precedence over config file.

    Args:
        config_path: Path to the INI configuration file.
        **cli_args: Key-value pairs from command line arguments.

    Returns:
        AppConfig: The populated configuration object.

    Raises:
        FileNotFoundError: If config_path or a snapshot file does not exist.
        ValueError: If a numeric field is malformed or the port is out of range.
    """
    server_config = ServerConfig()
    log_config = LogConfig()
    snapshot_file = None
    verbose = False

    if config_path is not None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        parser = configparser.ConfigParser()
        parser.read(config_file, encoding="utf-8")

        if parser.has_section("server"):
            section = parser["server"]
            if section.get("host"):
                server_config.host = section.get("host")
            if section.get("port"):
                server_config.port = _parse_int("server", "port", section.get("port"))
            if section.get("username"):
                server_config.username = section.get("username")
            if section.get("password"):
                server_config.password = section.get("password")
            if section.get("host_key_file"):
                server_config.host_key_file = section.get("host_key_file")
            if section.get("verbose"):
                verbose = _parse_bool(section.get("verbose"))

        if parser.has_section("namespace"):
            section = parser["namespace"]
            if section.get("snapshot_file"):
                snapshot_file = section.get("snapshot_file")
                # Relative snapshot paths are relative to the config file
                if not Path(snapshot_file).is_absolute():
                    snapshot_file = str(config_file.parent / snapshot_file)

        if parser.has_section("logging"):
            section = parser["logging"]
            if section.get("level"):
                log_config.level = section.get("level")
            if section.get("file"):
                log_config.file = section.get("file")
            if section.get("console"):
                log_config.console = _parse_bool(section.get("console"))

    # Override with CLI arguments (cli_args take precedence)
    if cli_args.get("host") is not None:
        server_config.host = cli_args["host"]
    if cli_args.get("port") is not None:
        server_config.port = int(cli_args["port"])
    if cli_args.get("username") is not None:
        server_config.username = cli_args["username"]
    if cli_args.get("password") is not None:
        server_config.password = cli_args["password"]
    if cli_args.get("host_key_file") is not None:
        server_config.host_key_file = cli_args["host_key_file"]
    if cli_args.get("snapshot_file") is not None:
        snapshot_file = cli_args["snapshot_file"]
    if cli_args.get("verbose"):
        verbose = True

    if verbose:
        log_config.level = "DEBUG"
        log_config.console = True

    if not 0 <= server_config.port <= 65535:
        raise ValueError(f"Invalid port: {server_config.port}. Must be between 0 and 65535.")

    snapshot = load_snapshot(snapshot_file) if snapshot_file else {}

    return AppConfig(
        server=server_config,
        logging=log_config,
        snapshot=snapshot,
        verbose=verbose,
    )
