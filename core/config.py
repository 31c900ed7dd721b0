"""Configuration models and loading."""

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

CONFIG_DIR = Path.home() / ".config" / "hls-stream-relay"
CONFIG_FILE = CONFIG_DIR / "config.json"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


class ServerSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8080
    dashboard: bool = True


class RelaySettings(BaseModel):
    endpoint: str = "/api/stream-proxy"


class UpstreamSettings(BaseModel):
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = 15.0
    connect_timeout: float = 10.0
    max_redirects: int = 10
    max_connections: int = 100
    max_keepalive_connections: int = 20


class ResponseSettings(BaseModel):
    cache_control: str = "max-age=3600"
    playlist_cache_control: str = "no-cache"


class Config(BaseModel):
    server: ServerSettings = Field(default_factory=ServerSettings)
    relay: RelaySettings = Field(default_factory=RelaySettings)
    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)
    response: ResponseSettings = Field(default_factory=ResponseSettings)


def load_config(config_file: Path = CONFIG_FILE) -> Config:
    """Load configuration from JSON file, creating default if needed."""
    if not config_file.exists():
        config_file.parent.mkdir(parents=True, exist_ok=True)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2))
        return default

    try:
        data = json.loads(config_file.read_text())
        return Config.model_validate(data)
    except (json.JSONDecodeError, ValidationError):
        # Backup corrupted config and recreate default
        backup = config_file.with_suffix(".json.bak")
        config_file.rename(backup)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2))
        return default
