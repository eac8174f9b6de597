import os
import re
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

_CONFIG_PATH = os.getenv("STK_WRAPPER_CONFIG", "config.toml")
_ENV_PATH = os.getenv("STK_WRAPPER_ENV", ".env")


class LogLocationSettings(BaseModel):
    """Where the server writes its log and how long to wait for it."""

    base_dir: Path = Field(default_factory=Path.home)
    config_dir: str = ".config"
    server_name: str = "supertuxkart"
    version_dir: str = "config-0.10"
    file_name: str = "server_config.log"

    max_attempts: int = Field(default=10, ge=1)
    retry_delay: float = Field(default=1.0, ge=0)
    backoff_factor: float = Field(default=1.0, ge=1.0)
    max_retry_delay: float = Field(default=30.0, gt=0)

    @property
    def relative_path(self) -> Path:
        return (
            Path(self.config_dir) / self.server_name / self.version_dir / self.file_name
        )


class TailSettings(BaseModel):
    poll_interval: float = Field(default=1.0, gt=0)  # seconds
    debounce_ms: int = Field(default=1600, ge=1)
    encoding: str = "utf-8"
    from_start: bool = False
    force_polling: Optional[bool] = None


class ClassifierSettings(BaseModel):
    """Regex patterns used to classify server log lines.

    Patterns are evaluated in declaration order and the first match wins.
    """

    ready_pattern: str = r"Listening has been started"
    join_pattern: str = r"ServerLobby: New player (.+) with online id [0-9][0-9]?"
    leave_pattern: str = r"^(?:.*ServerLobby:\s+|(?!.*[\[\]:]))(.+?) disconnected$"
    shutdown_pattern: str = r"STKHost.+There are now 0 peers\.$"

    @field_validator(
        "ready_pattern", "join_pattern", "leave_pattern", "shutdown_pattern"
    )
    @classmethod
    def _validate_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"Invalid regular expression {value!r}: {e}") from e
        return value

    @field_validator("join_pattern", "leave_pattern")
    @classmethod
    def _validate_capture_group(cls, value: str) -> str:
        if re.compile(value).groups < 1:
            raise ValueError(
                f"Pattern {value!r} must capture the player name in a group"
            )
        return value


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STK_WRAPPER_",
        env_nested_delimiter="__",
        toml_file=_CONFIG_PATH,
        env_file=_ENV_PATH,
        extra="ignore",
    )

    command: str = ""
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    logs_dir: Optional[Path] = None

    log_location: LogLocationSettings = Field(default_factory=LogLocationSettings)
    tail: TailSettings = Field(default_factory=TailSettings)
    classifier: ClassifierSettings = Field(default_factory=ClassifierSettings)

    # Seconds to wait for the monitor to finish after the server exits
    stop_timeout: float = Field(default=5.0, gt=0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Source order: init args > OS env > .env > config.toml > secrets
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


settings = Settings()
