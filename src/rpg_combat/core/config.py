"""Configuration management for the RPG combat engine.

Centralized configuration using pydantic-settings, supporting environment
variables, .env files, and runtime overrides.

Example:
    >>> from rpg_combat.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.combat.critical_multiplier
    2

Environment Variables:
    RPG_COMBAT_DATABASE_PATH: Path to the SQLite database file
    RPG_COMBAT_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    RPG_COMBAT_COMBAT_ALLOW_REINFORCEMENTS: Allow joining an active encounter
    RPG_COMBAT_COMBAT_CONFIRMATION_TIMEOUT_SECONDS: Expire unanswered hit requests
    RPG_COMBAT_REALTIME_CHANNEL_TEMPLATE: Pub/sub channel name for combat events
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rpg_combat.core.constants import (
    DEFAULT_COMBAT_LOG_LIMIT,
    DEFAULT_CRITICAL_MULTIPLIER,
    SETTLED_REQUEST_LIMIT,
)
from rpg_combat.core.exceptions import ConfigurationError


class StorageSettings(BaseSettings):
    """Configuration for the relational store.

    Attributes:
        database_path: Path to the SQLite database file.
    """

    model_config = SettingsConfigDict(
        env_prefix="RPG_COMBAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(
        default=Path("data/rpg_combat.db"),
        description="Path to SQLite database",
    )


class CombatSettings(BaseSettings):
    """Configuration for encounter and combat resolution behavior.

    Attributes:
        critical_multiplier: Damage multiplier for a critical roll.
        combat_log_limit: Number of log entries returned for history display.
        allow_reinforcements: Whether participants may join an active encounter.
        confirmation_timeout_seconds: Age after which an unanswered hit
            request expires. None waits forever.
        award_xp_on_kill: Grant XP to a player who defeats an NPC.
    """

    model_config = SettingsConfigDict(
        env_prefix="RPG_COMBAT_COMBAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    critical_multiplier: int = Field(
        default=DEFAULT_CRITICAL_MULTIPLIER,
        ge=1,
        le=4,
        description="Damage multiplier for critical rolls",
    )
    combat_log_limit: int = Field(
        default=DEFAULT_COMBAT_LOG_LIMIT,
        ge=1,
        le=500,
        description="Combat log entries returned for history",
    )
    allow_reinforcements: bool = Field(
        default=False,
        description="Allow adding participants to an active encounter",
    )
    confirmation_timeout_seconds: Annotated[float, Field(gt=0)] | None = Field(
        default=None,
        description="Expire unanswered hit confirmation requests",
    )
    award_xp_on_kill: bool = Field(
        default=True,
        description="Grant XP when a player defeats an NPC",
    )


class RealtimeSettings(BaseSettings):
    """Configuration for pub/sub channels and confirmation tracking.

    Attributes:
        channel_template: Channel carrying hit confirmation traffic.
        activity_channel_template: Channel notified about new activity rows.
        settled_request_limit: Missed or expired hit requests a client keeps
            before forgetting the oldest.
    """

    model_config = SettingsConfigDict(
        env_prefix="RPG_COMBAT_REALTIME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    channel_template: str = Field(
        default="game:{game_id}:combat",
        description="Combat channel name template",
    )
    activity_channel_template: str = Field(
        default="game:{game_id}:chat",
        description="Activity log channel name template",
    )
    settled_request_limit: int = Field(
        default=SETTLED_REQUEST_LIMIT,
        ge=0,
        description="Missed or expired hit requests kept for lookup",
    )

    @model_validator(mode="after")
    def validate_templates(self) -> "RealtimeSettings":
        """Ensure channel templates are scoped per game.

        Returns:
            Self if validation passes.

        Raises:
            ConfigurationError: If a template lacks the {game_id} placeholder.
        """
        for key in ("channel_template", "activity_channel_template"):
            if "{game_id}" not in getattr(self, key):
                raise ConfigurationError(
                    f"{key} must contain the {{game_id}} placeholder",
                    config_key=key,
                )
        return self


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        storage: Relational store settings.
        combat: Combat engine settings.
        realtime: Pub/sub settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="RPG_COMBAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="RPG Combat Engine",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    storage: StorageSettings = Field(default_factory=StorageSettings)
    combat: CombatSettings = Field(default_factory=CombatSettings)
    realtime: RealtimeSettings = Field(default_factory=RealtimeSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production mode.

        Returns:
            True if not in debug mode.
        """
        return not self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "StorageSettings",
    "CombatSettings",
    "RealtimeSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
