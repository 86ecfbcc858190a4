"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        RpgCombatError: Base exception for all engine errors.
        ValidationError, NotFoundError, ConcurrencyError: Client-facing errors.
        InvalidEncounterStateError, CombatError, DiceRollError,
        TurnManagementError, OutOfTurnError: Game engine errors.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        clear_context: Clear logging context.
"""

from __future__ import annotations

from rpg_combat.core.config import (
    CombatSettings,
    RealtimeSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from rpg_combat.core.exceptions import (
    CombatError,
    ConcurrencyError,
    ConfigurationError,
    ConfirmationError,
    DiceRollError,
    GameEngineError,
    InvalidEncounterStateError,
    NotFoundError,
    OutOfTurnError,
    RealtimeError,
    RpgCombatError,
    TurnManagementError,
    ValidationError,
)
from rpg_combat.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


__all__ = [
    # Base exception
    "RpgCombatError",
    # Configuration & validation exceptions
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "ConcurrencyError",
    # Game engine exceptions
    "GameEngineError",
    "InvalidEncounterStateError",
    "CombatError",
    "DiceRollError",
    "TurnManagementError",
    "OutOfTurnError",
    # Realtime exceptions
    "RealtimeError",
    "ConfirmationError",
    # Configuration
    "Settings",
    "StorageSettings",
    "CombatSettings",
    "RealtimeSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
