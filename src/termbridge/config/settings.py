"""Configuration management for termbridge.

Loads settings from a YAML configuration file with environment variable
overrides (``TERMBRIDGE_SERVER__PORT=9000`` and so on). Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from termbridge.domain.models import MAX_DIMENSION

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/termbridge.yaml")


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)
    websocket_path: str = Field(default="/term", pattern=r"^/")
    serve_static: bool = Field(default=True)
    static_dir: str | None = Field(
        default=None, description="Override for the bundled browser client directory"
    )


class TerminalConfig(BaseModel):
    columns: int = Field(
        default=164, gt=0, le=MAX_DIMENSION,
        description="Geometry used until the client reports its own",
    )
    rows: int = Field(default=50, gt=0, le=MAX_DIMENSION)
    term: str = Field(default="xterm-256color")
    color_depth: int = Field(default=24, gt=0)
    mouse: bool = Field(default=True)


class RelayConfig(BaseModel):
    max_pending_bytes: int = Field(default=1024 * 1024, gt=0)
    coalesce: bool = Field(default=True)


class EngineConfig(BaseModel):
    name: str = Field(default="prompt")
    title: str = Field(default="termbridge")
    tick_interval: float | None = Field(default=None, gt=0)


class ClientConfig(BaseModel):
    url: str = Field(default="ws://localhost:3000/term")
    open_timeout: float = Field(default=10.0, gt=0)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for termbridge.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "TERMBRIDGE_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    server: ServerConfig = Field(default_factory=ServerConfig)
    terminal: TerminalConfig = Field(default_factory=TerminalConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Constructor arguments carry the YAML file, so they rank below the
        # environment.
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    _load_dotenv()

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _load_dotenv() -> None:
    """Load .env file into os.environ if it exists."""
    env_path = Path(".env")
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                if not os.environ.get(key):
                    os.environ[key] = value


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply overrides from the conventional unprefixed variables.

    ``PORT`` and ``HOST`` are what most hosting platforms set, so honour
    them when the YAML file did not pin a value.
    """
    port = os.environ.get("PORT", "")
    host = os.environ.get("HOST", "")

    if "server" not in yaml_data:
        yaml_data["server"] = {}

    if port and not yaml_data["server"].get("port"):
        yaml_data["server"]["port"] = port

    if host and not yaml_data["server"].get("host"):
        yaml_data["server"]["host"] = host
