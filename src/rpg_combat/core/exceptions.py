"""Custom exception hierarchy for the RPG combat engine.

Every error raised by this package inherits from RpgCombatError, so callers
at the client boundary can catch one type, show ``exc.message`` to the user
and log ``exc.details`` for diagnostics.

Example:
    >>> from rpg_combat.core.exceptions import NotFoundError
    >>> raise NotFoundError("Encounter not found", entity="encounter", entity_id="abc")
"""

from __future__ import annotations

from typing import Any


class RpgCombatError(Exception):
    """Base exception for all RPG combat engine errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(RpgCombatError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(RpgCombatError):
    """Raised when input is rejected before any state is mutated.

    Covers empty target lists, too many targets for a single-target action,
    and non-positive dice or quantities.
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


class NotFoundError(RpgCombatError):
    """Raised when an encounter, participant or roster entry does not exist."""

    def __init__(
        self,
        message: str,
        *,
        entity: str | None = None,
        entity_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize not-found error with entity context.

        Args:
            message: Human-readable error description.
            entity: Kind of record that was looked up.
            entity_id: Identifier that was not found.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if entity:
            combined_details["entity"] = entity
        if entity_id:
            combined_details["entity_id"] = entity_id
        super().__init__(message, details=combined_details)


class ConcurrencyError(RpgCombatError):
    """Raised when a write is based on a stale version of a record.

    Two clients racing to advance the same turn will see one of them
    rejected with this error instead of silently overwriting the other.
    """

    def __init__(
        self,
        message: str,
        *,
        entity_id: str | None = None,
        expected_version: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize concurrency error with version context.

        Args:
            message: Human-readable error description.
            entity_id: Identifier of the record that changed underneath us.
            expected_version: The version the writer based its change on.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if entity_id:
            combined_details["entity_id"] = entity_id
        if expected_version is not None:
            combined_details["expected_version"] = expected_version
        super().__init__(message, details=combined_details)


# =============================================================================
# Game Engine Domain Exceptions
# =============================================================================


class GameEngineError(RpgCombatError):
    """Base exception for encounter, turn and combat resolution errors."""


class InvalidEncounterStateError(GameEngineError):
    """Raised when an operation is not allowed in the encounter's status."""

    def __init__(
        self,
        message: str,
        *,
        current_state: str | None = None,
        expected_states: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid state error with state context.

        Args:
            message: Human-readable error description.
            current_state: The encounter's current status.
            expected_states: Statuses in which the operation is allowed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if current_state:
            combined_details["current_state"] = current_state
        if expected_states:
            combined_details["expected_states"] = expected_states
        super().__init__(message, details=combined_details)


class CombatError(GameEngineError):
    """Raised when combat resolution encounters an error."""

    def __init__(
        self,
        message: str,
        *,
        combatant_id: str | None = None,
        round_number: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize combat error with combat context.

        Args:
            message: Human-readable error description.
            combatant_id: Identifier of the combatant involved.
            round_number: Current combat round when error occurred.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if combatant_id:
            combined_details["combatant_id"] = combatant_id
        if round_number is not None:
            combined_details["round_number"] = round_number
        super().__init__(message, details=combined_details)


class DiceRollError(GameEngineError):
    """Raised when dice parameters are invalid (non-positive sides or count)."""

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize dice roll error with expression context.

        Args:
            message: Human-readable error description.
            expression: The dice expression that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


class TurnManagementError(GameEngineError):
    """Raised when turn order or round progression cannot proceed."""


class OutOfTurnError(TurnManagementError):
    """Raised when a client acts for a participant it does not control.

    This is an advisory check made on the client side of the protocol.
    """

    def __init__(
        self,
        message: str,
        *,
        actor_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize out-of-turn error with actor context.

        Args:
            message: Human-readable error description.
            actor_id: Identifier of the actor that tried to act.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if actor_id:
            combined_details["actor_id"] = actor_id
        super().__init__(message, details=combined_details)


# =============================================================================
# Realtime Domain Exceptions
# =============================================================================


class RealtimeError(RpgCombatError):
    """Base exception for pub/sub channel errors."""


class ConfirmationError(RealtimeError):
    """Raised for malformed or unknown hit-confirmation requests."""

    def __init__(
        self,
        message: str,
        *,
        request_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize confirmation error with request context.

        Args:
            message: Human-readable error description.
            request_id: Identifier of the pending confirmation request.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if request_id:
            combined_details["request_id"] = request_id
        super().__init__(message, details=combined_details)


__all__ = [
    # Base exception
    "RpgCombatError",
    # Configuration & validation
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "ConcurrencyError",
    # Game engine
    "GameEngineError",
    "InvalidEncounterStateError",
    "CombatError",
    "DiceRollError",
    "TurnManagementError",
    "OutOfTurnError",
    # Realtime
    "RealtimeError",
    "ConfirmationError",
]
