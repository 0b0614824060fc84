"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from callrelay.utils.platform import get_config_dir, get_data_dir


class UpstreamConfig(BaseModel):
    api_base: str = "http://127.0.0.1:8080"
    auth_token: str = ""
    timeout: float = 30.0

    @field_validator("api_base")
    @classmethod
    def _strip_trailing_slashes(cls, value: str) -> str:
        return value.rstrip("/")


class ServerConfig(BaseModel):
    bind: str = "0.0.0.0"
    port: int = 9000
    cors_origin: str = "*"
    static_dir: str = ""
    max_body_size: int = 1024 * 1024


class StreamConfig(BaseModel):
    keepalive_interval: float = 25.0


class JournalConfig(BaseModel):
    """Per-call JSON-lines log of raw webhooks."""
    enabled: bool = True
    log_dir: str = ""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CALLRELAY_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    journal: JournalConfig = Field(default_factory=JournalConfig)
    data_dir: str = ""
    log_level: str = "INFO"
    log_json: bool = False
    debug: bool = False

    def get_data_dir(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir)
        return get_data_dir()

    def get_journal_dir(self) -> Path:
        if self.journal.log_dir:
            return Path(self.journal.log_dir)
        return self.get_data_dir() / "logs"

    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config."""
    yaml_data: dict[str, Any] = {}

    # Determine config file path
    if config_path is None:
        config_path = os.environ.get("CALLRELAY_CONFIG")
    if config_path is None:
        default = get_config_dir() / "config.yaml"
        if default.exists():
            config_path = default

    # Load YAML if found
    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                yaml_data = yaml.safe_load(f) or {}

    # YAML keys are init kwargs and win; env vars fill in the rest
    return Settings(**yaml_data)
