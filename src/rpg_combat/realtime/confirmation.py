"""Master hit-confirmation handshake.

1. The acting client publishes ``combat_action_requested`` with a request
   id it generated.
2. The master's client lists the request; the master rules hit or miss.
3. The master's client publishes ``combat_hit_confirmed`` with the same id.
4. The acting client matches the id. A miss abandons the request; a hit
   lets the actor enter damage.

Healing never goes through this handshake. There is no retry and, unless
``combat.confirmation_timeout_seconds`` is set, no timeout: a lost message
leaves the request pending.
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import pydantic

from rpg_combat.core.constants import COMBAT_ACTION_REQUESTED, COMBAT_HIT_CONFIRMED
from rpg_combat.core.exceptions import ConfirmationError, ValidationError
from rpg_combat.core.logging import get_logger
from rpg_combat.models.combat import CombatTarget, TargetRef
from rpg_combat.models.enums import ConfirmationState, TargetType
from rpg_combat.models.events import HitConfirmedEvent
from rpg_combat.models.messages import CombatHitConfirmation, PendingCombatAction
from rpg_combat.realtime.bus import combat_channel


if TYPE_CHECKING:
    from rpg_combat.core.config import Settings
    from rpg_combat.models.combat import CombatAction
    from rpg_combat.realtime.activity import ActivityLog
    from rpg_combat.realtime.bus import MessageBus, Unsubscribe

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class TrackedRequest:
    """A request the acting client is waiting on.

    Attributes:
        request: The published request.
        state: Where the handshake stands.
    """

    request: PendingCombatAction
    state: ConfirmationState = ConfirmationState.PENDING

    @property
    def id(self) -> str:
        """Request identifier."""
        return self.request.id


# =============================================================================
# Acting client
# =============================================================================


class ConfirmationRequester:
    """Ask the master whether attacks hit and track the answers."""

    def __init__(
        self,
        bus: MessageBus,
        settings: Settings | None = None,
        *,
        clock: Callable[[], int] = _now_ms,
        on_resolved: Callable[[TrackedRequest], None] | None = None,
    ) -> None:
        """Initialize the requester.

        Args:
            bus: Channel service.
            settings: Settings for channel names and the optional timeout.
            clock: Epoch-milliseconds clock used for ids and expiry.
            on_resolved: Called once a request is ruled hit or miss.
        """
        if settings is None:
            from rpg_combat.core.config import get_settings

            settings = get_settings()
        self._bus = bus
        self._settings = settings
        self._clock = clock
        self._on_resolved = on_resolved
        self._requests: dict[str, TrackedRequest] = {}
        self._settled: deque[str] = deque()
        self._subscriptions: dict[str, Unsubscribe] = {}

    def request(
        self,
        actor: TargetRef,
        action: CombatAction,
        targets: list[TargetRef] | list[CombatTarget],
        game_id: str,
        encounter_id: str,
    ) -> PendingCombatAction:
        """Publish a hit-confirmation request.

        Returns:
            The published request.

        Raises:
            ValidationError: If the action heals or the targets do not fit it.
        """
        if action.heals:
            raise ValidationError(
                "Healing actions do not need hit confirmation",
                field_name="action",
                invalid_value=action.name,
            )
        if not targets:
            raise ValidationError("At least one target is required", field_name="targets")
        if action.target_type == TargetType.SINGLE and len(targets) > 1:
            raise ValidationError(
                "Single-target action used on several targets",
                field_name="targets",
                invalid_value=len(targets),
            )

        refs = [t.ref() if isinstance(t, CombatTarget) else t for t in targets]
        ids = [r.id for r in refs]
        if len(set(ids)) != len(ids):
            raise ValidationError(
                "Target listed more than once",
                field_name="targets",
                invalid_value=ids,
            )
        requested_at = self._clock()
        request = PendingCombatAction(
            id=self._new_id(actor.id, action.id or action.name, requested_at),
            actor_id=actor.id,
            actor_type=actor.type,
            actor_name=actor.name,
            action=action,
            targets=refs,
            game_id=game_id,
            encounter_id=encounter_id,
            requested_at=requested_at,
        )

        self._listen(game_id)
        self._requests[request.id] = TrackedRequest(request)
        self._bus.publish(
            combat_channel(game_id, self._settings),
            COMBAT_ACTION_REQUESTED,
            request.to_payload(),
        )
        logger.info(
            "Hit confirmation requested",
            request_id=request.id,
            actor_id=actor.id,
            action=action.name,
            targets=len(refs),
        )
        return request

    def _new_id(self, actor_id: str, action_key: str, requested_at: int) -> str:
        base = f"{actor_id}-{action_key}-{requested_at}"
        request_id = base
        suffix = 1
        while request_id in self._requests:
            request_id = f"{base}-{suffix}"
            suffix += 1
        return request_id

    def _listen(self, game_id: str) -> None:
        if game_id in self._subscriptions:
            return
        self._subscriptions[game_id] = self._bus.subscribe(
            combat_channel(game_id, self._settings),
            COMBAT_HIT_CONFIRMED,
            self._on_confirmation,
        )

    def _on_confirmation(self, payload: dict[str, Any]) -> None:
        try:
            confirmation = CombatHitConfirmation.model_validate(payload)
        except pydantic.ValidationError:
            logger.warning("Malformed hit confirmation ignored", payload=payload)
            return

        tracked = self._requests.get(confirmation.action_id)
        if tracked is None or tracked.state != ConfirmationState.PENDING:
            logger.debug("Hit confirmation for another request", request_id=confirmation.action_id)
            return
        if confirmation.game_id != tracked.request.game_id:
            logger.debug("Hit confirmation from another game", request_id=confirmation.action_id)
            return

        if confirmation.hit:
            tracked.state = ConfirmationState.HIT
        else:
            self._settle(tracked, ConfirmationState.MISSED)
        logger.info("Hit confirmation received", request_id=tracked.id, hit=confirmation.hit)

        if self._on_resolved is not None:
            self._on_resolved(tracked)

    def _settle(self, tracked: TrackedRequest, state: ConfirmationState) -> None:
        # Only the newest settled requests stay queryable.
        tracked.state = state
        self._settled.append(tracked.id)
        while len(self._settled) > self._settings.realtime.settled_request_limit:
            self._requests.pop(self._settled.popleft(), None)

    def state(self, request_id: str) -> ConfirmationState:
        """Where a request stands.

        Raises:
            ConfirmationError: If the request is unknown.
        """
        return self._get(request_id).state

    def get(self, request_id: str) -> PendingCombatAction:
        """Get a tracked request.

        Raises:
            ConfirmationError: If the request is unknown.
        """
        return self._get(request_id).request

    def _get(self, request_id: str) -> TrackedRequest:
        tracked = self._requests.get(request_id)
        if tracked is None:
            raise ConfirmationError("Unknown confirmation request", request_id=request_id)
        return tracked

    def pending(self) -> list[PendingCombatAction]:
        """Requests still waiting for the master."""
        return [t.request for t in self._requests.values() if t.state == ConfirmationState.PENDING]

    def confirmed_hit(self, request_id: str) -> PendingCombatAction:
        """Get a request the master ruled a hit, leaving it tracked.

        Raises:
            ConfirmationError: If the request is unknown or was not ruled a hit.
        """
        tracked = self._get(request_id)
        if tracked.state != ConfirmationState.HIT:
            raise ConfirmationError(
                f"Request is {tracked.state}, not hit",
                request_id=request_id,
            )
        return tracked.request

    def take_hit(self, request_id: str) -> PendingCombatAction:
        """Consume a confirmed hit so damage can be applied once.

        Raises:
            ConfirmationError: If the request is unknown or was not ruled a hit.
        """
        request = self.confirmed_hit(request_id)
        del self._requests[request_id]
        return request

    def discard(self, request_id: str) -> None:
        """Forget a request in any state."""
        if self._requests.pop(request_id, None) is not None and request_id in self._settled:
            self._settled.remove(request_id)

    def expire_stale(self, now: int | None = None) -> list[str]:
        """Expire pending requests older than the configured timeout.

        Does nothing when no timeout is configured.

        Args:
            now: Epoch milliseconds. Defaults to the clock.

        Returns:
            IDs of the requests expired by this call.
        """
        timeout = self._settings.combat.confirmation_timeout_seconds
        if timeout is None:
            return []

        now = self._clock() if now is None else now
        cutoff = now - int(timeout * 1000)
        stale = [
            t for t in self._requests.values()
            if t.state == ConfirmationState.PENDING and t.request.requested_at <= cutoff
        ]
        expired = []
        for tracked in stale:
            expired.append(tracked.id)
            self._settle(tracked, ConfirmationState.EXPIRED)

        if expired:
            logger.warning("Hit confirmation requests expired", request_ids=expired)
        return expired

    def close(self) -> None:
        """Stop listening for confirmations."""
        for unsubscribe in self._subscriptions.values():
            unsubscribe()
        self._subscriptions.clear()


# =============================================================================
# Master client
# =============================================================================


class MasterConfirmationDesk:
    """The master's inbox of pending hit-confirmation requests for one game."""

    def __init__(
        self,
        bus: MessageBus,
        game_id: str,
        settings: Settings | None = None,
        *,
        activity_log: ActivityLog | None = None,
    ) -> None:
        """Start listening for requests.

        Args:
            bus: Channel service.
            game_id: The game this desk serves.
            settings: Settings for channel names.
            activity_log: Where rulings are announced.
        """
        if settings is None:
            from rpg_combat.core.config import get_settings

            settings = get_settings()
        self._bus = bus
        self._settings = settings
        self._activity = activity_log
        self.game_id = game_id
        self._pending: dict[str, PendingCombatAction] = {}
        self._unsubscribe = bus.subscribe(
            combat_channel(game_id, settings),
            COMBAT_ACTION_REQUESTED,
            self._on_request,
        )

    def _on_request(self, payload: dict[str, Any]) -> None:
        try:
            request = PendingCombatAction.model_validate(payload)
        except pydantic.ValidationError:
            logger.warning("Malformed confirmation request ignored", payload=payload)
            return

        if request.game_id != self.game_id:
            logger.debug("Request for another game ignored", request_id=request.id)
            return
        if request.id in self._pending:
            logger.debug("Duplicate request ignored", request_id=request.id)
            return

        self._pending[request.id] = request
        logger.info(
            "Hit confirmation pending",
            request_id=request.id,
            actor=request.actor_name,
            action=request.action.name,
        )

    def pending(self) -> list[PendingCombatAction]:
        """Requests awaiting a ruling, oldest first."""
        return list(self._pending.values())

    def confirm(self, request_id: str, hit: bool) -> CombatHitConfirmation:
        """Rule on a request and tell the acting client.

        Raises:
            ConfirmationError: If no such request is pending.
        """
        request = self._pending.pop(request_id, None)
        if request is None:
            raise ConfirmationError("No pending request with this id", request_id=request_id)

        confirmation = CombatHitConfirmation(action_id=request_id, hit=hit, game_id=self.game_id)
        self._bus.publish(
            combat_channel(self.game_id, self._settings),
            COMBAT_HIT_CONFIRMED,
            confirmation.to_payload(),
        )
        logger.info("Hit confirmed" if hit else "Miss confirmed", request_id=request_id)

        if self._activity is not None:
            target_names = [t.name for t in request.targets]
            verb = "hit" if hit else "missed"
            try:
                self._activity.record(
                    self.game_id,
                    HitConfirmedEvent(
                        message=f"{request.actor_name} {verb} {request.action.name} on {', '.join(target_names)}.",
                        actor_id=request.actor_id,
                        actor_name=request.actor_name,
                        action_name=request.action.name,
                        target_names=target_names,
                        hit=hit,
                    ),
                )
            except Exception:
                logger.exception("Activity event not recorded", request_id=request_id)

        return confirmation

    def close(self) -> None:
        """Stop listening for requests."""
        self._unsubscribe()


__all__ = [
    "TrackedRequest",
    "ConfirmationRequester",
    "MasterConfirmationDesk",
]
