"""Loading and validation of the service's YAML configuration."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import timedelta
from pathlib import Path
from typing import Any, get_origin

import yaml

__all__ = [
    "ConfigError",
    "ServerConfig",
    "DatabaseConfig",
    "PythonServiceConfig",
    "UploadConfig",
    "SessionConfig",
    "CORSConfig",
    "Config",
    "DEFAULT_CONFIG_FILE",
    "parse_config",
    "validate_config",
    "create_upload_dirs",
    "load_config",
    "get_config",
]

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.yaml"

_SHIPPED_SAMPLE_SESSION_VALUE = "bridge-detection-secret-key-change-in-production"


class ConfigError(Exception):
    """Raised when the configuration cannot be read, parsed or validated."""


@dataclass
class ServerConfig:
    port: int = 0
    mode: str = ""


@dataclass
class DatabaseConfig:
    dsn: str = ""
    max_idle_conns: int = 0
    max_open_conns: int = 0
    conn_max_lifetime: int = 0

    def conn_max_lifetime_duration(self) -> timedelta:
        """Connection lifetime as a timedelta."""
        return timedelta(seconds=self.conn_max_lifetime)


@dataclass
class PythonServiceConfig:
    enabled: bool = False
    url: str = ""
    timeout: int = 0

    def timeout_duration(self) -> timedelta:
        """Request timeout as a timedelta."""
        return timedelta(seconds=self.timeout)


@dataclass
class UploadConfig:
    image_dir: str = ""
    result_dir: str = ""
    max_size: int = 0


@dataclass
class SessionConfig:
    secret: str = ""
    max_age: int = 0
    cookie_name: str = ""


@dataclass
class CORSConfig:
    allow_origins: list[str] = field(default_factory=list)
    allow_credentials: bool = False


@dataclass
class Config:
    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    python_service: PythonServiceConfig = field(default_factory=PythonServiceConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    cors: CORSConfig = field(default_factory=CORSConfig)


def _coerce(value: Any, kind: Any, where: str) -> Any:
    if kind is bool:
        if isinstance(value, bool):
            return value
    elif kind is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif kind is str:
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
    elif get_origin(kind) is list:
        if isinstance(value, list):
            return [_coerce(item, str, f"{where}[]") for item in value]
    raise ConfigError(f"{where}: unexpected value {value!r}")


def _build(cls: type, raw: Any, where: str) -> Any:
    if raw is None:
        return cls()
    if not isinstance(raw, Mapping):
        raise ConfigError(f"{where}: expected a mapping")
    values = {
        f.name: _coerce(raw[f.name], f.type, f"{where}.{f.name}")
        for f in fields(cls)
        if raw.get(f.name) is not None
    }
    return cls(**values)


def parse_config(data: str | bytes) -> Config:
    """Parse YAML text into a Config; unknown keys are ignored."""
    try:
        raw = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse configuration: {exc}") from exc
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigError("configuration root must be a mapping")
    sections = {f.name: _build(f.default_factory(), raw.get(f.name), f.name) for f in fields(Config)}
    return Config(**sections)


def _section_type(instance: Any) -> type:
    return type(instance)


def validate_config(cfg: Config) -> None:
    """Check required settings; raise ConfigError on the first problem."""
    if not cfg.database.dsn:
        raise ConfigError("database.dsn must not be empty")
    if not 0 < cfg.server.port <= 65535:
        raise ConfigError("server.port must be between 1 and 65535")
    if not cfg.session.secret:
        raise ConfigError("session.secret must not be empty")
    if cfg.server.mode == "release" and cfg.session.secret == _SHIPPED_SAMPLE_SESSION_VALUE:
        logger.warning("session.secret still has the sample value; change it for production")


def create_upload_dirs(cfg: Config) -> None:
    """Create the image and result directories, logging any failure."""
    for directory in (cfg.upload.image_dir, cfg.upload.result_dir):
        try:
            os.makedirs(directory, mode=0o755, exist_ok=True)
        except OSError as exc:
            logger.warning("failed to create directory %r: %s", directory, exc)


_global_config: Config | None = None
_global_lock = threading.Lock()


def load_config(path: str | os.PathLike[str] = DEFAULT_CONFIG_FILE) -> Config:
    """Load, validate and remember the configuration; later calls return the same object."""
    global _global_config
    with _global_lock:
        if _global_config is not None:
            return _global_config
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise ConfigError(
                f"failed to read configuration file {os.fspath(path)!r}: {exc}; "
                "make sure config.yaml exists in the project root"
            ) from exc
        cfg = parse_config(data)
        validate_config(cfg)
        create_upload_dirs(cfg)
        _global_config = cfg
    logger.info("configuration loaded")
    return cfg


def get_config() -> Config:
    """Return the loaded configuration, loading the default file if needed."""
    if _global_config is None:
        return load_config()
    return _global_config