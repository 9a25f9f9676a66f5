from datetime import datetime
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from lifedeck.domain.constants import AI_REQUEST_TIMEOUT
from lifedeck.domain.models import LifeDomain, SubscriptionTier


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/lifedeck/config.toml",
        Path.home() / ".lifedeck.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for lifedeck.
    Supports loading from:
    1. Environment variables (LIFEDECK_*)
    2. Config file (~/.config/lifedeck/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="LIFEDECK_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/lifedeck")
    catalog_path: Path | None = None  # None = packaged templates

    # Subscription (host apps inject a provider; the CLI reads these)
    tier: SubscriptionTier = SubscriptionTier.FREE
    premium_active: bool = False
    premium_expiry: datetime | None = None

    # Deck
    focus_domains: Annotated[list[LifeDomain], NoDecode] = Field(default_factory=list)
    snooze_hours: float = 2.0
    seed: int | None = None

    # AI personalization
    ai_endpoint: str | None = None
    ai_timeout: float = AI_REQUEST_TIMEOUT

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
        toml_file = next((f for f in config_files() if f.exists()), None)

        # Earlier sources take priority: CLI > env > file
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", mode="before")
    @classmethod
    def resolve_data_dir(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("catalog_path", mode="before")
    @classmethod
    def resolve_catalog_path(cls, v: Any) -> Path | None:
        if v:
            return Path(v).expanduser().resolve()
        return None

    @field_validator("focus_domains", mode="before")
    @classmethod
    def split_focus_domains(cls, v: Any) -> Any:
        # Allow "health,finance" from env vars and CLI options
        if isinstance(v, str):
            return [part.strip().lower() for part in v.split(",") if part.strip()]
        return v

    @field_validator("snooze_hours", "ai_timeout")
    @classmethod
    def must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/lifedeck/config.toml (if exists)
    3. Environment variables (LIFEDECK_*)
    4. cli_overrides (passed from Typer)
    """
    # Typer passes None for options that were not given
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
