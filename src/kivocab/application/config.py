from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from kivocab.domain.constants import DEFAULT_SESSION_SIZE
from kivocab.domain.models import DirectionSetting


def config_file_path() -> Path:
    return Path.home() / ".config/kivocab/config.toml"


class AppConfig(BaseSettings):
    """
    Configuration model for kivocab.
    Supports loading from:
    1. Environment variables (KIVOCAB_*)
    2. Config file (~/.config/kivocab/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="KIVOCAB_",
        extra="ignore",
    )

    # Paths
    data_file: Path = Field(
        default_factory=lambda: Path.home() / ".config/kivocab/vocabulary.json"
    )

    # Study Settings
    session_size: int = DEFAULT_SESSION_SIZE
    direction: DirectionSetting = DirectionSetting.FORWARD

    # Default for -v when the flag is not given
    verbose: int = 0

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        toml_file = config_file_path()
        if toml_file.exists():
            # Earlier sources win: overrides, then env, then the file.
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("session_size")
    @classmethod
    def check_session_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("session_size must be at least 1")
        return v

    @field_validator("data_file", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        return Path(v).expanduser()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/kivocab/config.toml (if exists)
    3. Environment variables (KIVOCAB_*)
    4. cli_overrides (None values are ignored)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
