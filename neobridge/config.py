from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from neobridge.errors import ConfigurationError


def get_config() -> Config:
    return Config()


class Config(BaseSettings):
    api_key: str | None = None
    backend_url: str = "http://localhost:8080"

    saved_dir: str = (Path.cwd() / "Saved" / "NeoStack").expanduser().resolve().absolute().as_posix()
    project_dir: str = Path.cwd().expanduser().resolve().absolute().as_posix()

    default_agent: str = "orchestrator"
    default_model: str = "anthropic/claude-haiku-4.5"

    connect_timeout: float = 10.0
    read_timeout: float = 300.0

    log_level: str = "WARNING"

    model_config = SettingsConfigDict(env_prefix="neobridge_", case_sensitive=False, frozen=True)

    @property
    def conversations_dir(self) -> Path:
        return Path(self.saved_dir).expanduser() / "Conversations"

    @property
    def settings_file_path(self) -> Path:
        return Path(self.saved_dir).expanduser() / "settings.json"

    def get_backend_url(self) -> str:
        return self.backend_url.rstrip("/")

    def validate_backend(self) -> None:
        if not self.api_key:
            raise ConfigurationError("API Key not configured. Set NEOBRIDGE_API_KEY")
        if not self.backend_url:
            raise ConfigurationError("Backend URL not configured")
