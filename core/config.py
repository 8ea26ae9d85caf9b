"""Configuration models and loading."""

import json
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.exceptions import ConfigurationError

CONFIG_DIR = Path.home() / ".config" / "meter-relay"
CONFIG_FILE = CONFIG_DIR / "config.json"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ServerSettings(_Frozen):
    host: str = "127.0.0.1"
    port: int = 3001
    keep_alive_timeout: int = 5


class CorsSettings(_Frozen):
    allowed_origins: tuple[str, ...] = (
        "https://aurora-smart-meter.onrender.com",
        "https://smart-simulator.netlify.app",
        "http://localhost:3000",
        "http://localhost:3001",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:3001",
    )
    allowed_methods: tuple[str, ...] = ("GET", "POST", "OPTIONS")
    allowed_headers: tuple[str, ...] = ("content-type", "authorization", "apikey")
    allow_credentials: bool = True
    max_age: int = 600
    preflight_status: int = 200


class DownstreamSettings(_Frozen):
    allowed_hosts: tuple[str, ...] = ("*.supabase.co",)
    path_prefixes: tuple[str, ...] = ("/functions/v1/",)
    api_key: str = ""
    timeout: float = 20.0
    max_connections: int = 100
    max_keepalive_connections: int = 20


class RelaySettings(_Frozen):
    max_body_size: int = 1024 * 1024
    disconnect_poll_interval: float = 0.25


class LoggingSettings(_Frozen):
    log_dir: str = "logs"
    write_files: bool = True


class Config(_Frozen):
    server: ServerSettings = Field(default_factory=ServerSettings)
    cors: CorsSettings = Field(default_factory=CorsSettings)
    downstream: DownstreamSettings = Field(default_factory=DownstreamSettings)
    relay: RelaySettings = Field(default_factory=RelaySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def config_path() -> Path:
    """Return the config file location, honouring METER_RELAY_CONFIG."""
    override = os.environ.get("METER_RELAY_CONFIG")
    return Path(override) if override else CONFIG_FILE


def load_config(path: Path | None = None) -> Config:
    """Load configuration from JSON file, creating default if needed."""
    path = path or config_path()
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        config = Config()
        path.write_text(config.model_dump_json(indent=2))
    else:
        try:
            data = json.loads(path.read_text())
            config = Config.model_validate(data)
        except (json.JSONDecodeError, ValidationError):
            # Backup corrupted config and recreate default
            backup = path.with_suffix(".json.bak")
            path.rename(backup)
            config = Config()
            path.write_text(config.model_dump_json(indent=2))

    return apply_env_overrides(config)


def apply_env_overrides(config: Config, environ: dict[str, str] | None = None) -> Config:
    """Apply deployment environment variables (PORT, DOWNSTREAM_API_KEY)."""
    environ = os.environ if environ is None else environ
    updates = {}

    port = environ.get("PORT")
    if port:
        try:
            port_number = int(port)
        except ValueError as e:
            raise ConfigurationError(f"PORT must be an integer, got {port!r}") from e
        updates["server"] = config.server.model_copy(
            update={"port": port_number, "host": "0.0.0.0"}
        )

    api_key = environ.get("DOWNSTREAM_API_KEY")
    if api_key:
        updates["downstream"] = config.downstream.model_copy(update={"api_key": api_key})

    return config.model_copy(update=updates) if updates else config


def validate_config(config: Config) -> None:
    """Reject settings the relay cannot serve with.

    Raises:
        ConfigurationError: no downstream host allowed, or a non-positive timeout
    """
    if not config.downstream.allowed_hosts:
        raise ConfigurationError("downstream.allowed_hosts is empty")
    if config.downstream.timeout <= 0:
        raise ConfigurationError("downstream.timeout must be positive")
