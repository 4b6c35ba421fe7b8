from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from hafiz.domain.constants import DEFAULT_DUE_LIMIT, DEFAULT_HISTORY_DAYS

CONFIG_FILES = [
    Path.home() / ".config/hafiz/config.toml",
    Path.home() / ".hafiz.toml",
]


class AppConfig(BaseSettings):
    """
    Configuration model for hafiz.
    Supports loading from:
    1. Environment variables (HAFIZ_*)
    2. Config file (~/.config/hafiz/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="HAFIZ_",
        extra="ignore",
    )

    # Storage
    backend: Literal["sqlite", "memory"] = "sqlite"
    db_path: Path = Field(default_factory=lambda: Path.home() / ".config/hafiz/hafiz.db")

    # Review defaults
    due_limit: int = Field(default=DEFAULT_DUE_LIMIT, gt=0)
    history_days: int = Field(default=DEFAULT_HISTORY_DAYS, gt=0)
    track_progress: bool = True

    verbose: int = 1

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

        # First existing file wins
        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("db_path", mode="before")
    @classmethod
    def resolve_db_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/hafiz/config.toml (if exists)
    3. Environment variables (HAFIZ_*)
    4. cli_overrides (passed from Typer)
    """
    # Typer passes None for options the user did not set; those must not mask lower layers.
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
