"""
Presence and host lifecycle: join, departure and host (re-)election
"""
import logging
from typing import Any, Optional

from .protocol import (
    IGNORED, Delivery, Outcome,
    host_message, joined_message, leave_message, presence_message,
)
from .registry import ConnectionRegistry, Participant
from .state import RoomState

logger = logging.getLogger("planning_poker")


class PresenceManager:
    """Keeps the host pointer valid while participants come and go.

    Re-election picks the first remaining participant in join order.
    """

    def __init__(self, state: RoomState, registry: ConnectionRegistry) -> None:
        self.state = state
        self.registry = registry

    def join(self, connection: Any, participant_id: str, name: str) -> Outcome:
        previous = self.registry.lookup(connection)
        self.registry.bind(connection, Participant(participant_id, name))

        # Same socket re-joining under another id must not leave a dangling vote
        if previous and previous.id != participant_id and not self.registry.has_participant(previous.id):
            self.state.remove_vote(previous.id)

        host_id = self.state.host_id
        if host_id is None or not self.registry.has_participant(host_id):
            self.state.set_host(participant_id)
            logger.info("👑 %s (%s) is now host", name, participant_id)

        logger.info("✅ %s (%s) joined [participants: %d]", name, participant_id, len(self.registry))

        snapshot = self.state.snapshot(self.registry.all())
        others = tuple(c for c in self.registry.connections() if c is not connection)
        return Outcome(deliveries=(
            Delivery((connection,), snapshot.as_message()),
            Delivery((connection,), joined_message(participant_id)),
            Delivery(others, presence_message(participant_id, name)),
        ))

    def depart(self, connection: Any) -> Outcome:
        """Remove whoever is bound to the connection; a second call is a no-op"""
        participant = self.registry.unbind(connection)
        if participant is None:
            if not self.registry and not self.state.is_initial():
                self.state.clear()
            return IGNORED

        still_connected = self.registry.has_participant(participant.id)
        if not still_connected:
            self.state.remove_vote(participant.id)

        remaining = tuple(self.registry.connections())
        deliveries = [Delivery(remaining, leave_message(participant.id))]
        logger.info("👋 %s (%s) left [participants: %d]", participant.name, participant.id, len(self.registry))

        host_id = self.state.host_id
        if host_id is not None and not self.registry.has_participant(host_id):
            new_host = self.elect_host()
            deliveries.append(Delivery(remaining, host_message(new_host)))

        if not self.registry:
            self.state.clear()
            logger.info("🧹 Room empty, state reset")

        return Outcome(deliveries=tuple(deliveries))

    def transfer_host(self, target_id: str) -> Outcome:
        # Target is not required to be connected; the next join heals a stale host
        self.state.set_host(target_id)
        logger.info("👑 Host transferred to %s", target_id)
        everyone = tuple(self.registry.connections())
        return Outcome(deliveries=(Delivery(everyone, host_message(target_id)),))

    def elect_host(self) -> Optional[str]:
        successor = self.registry.first()
        new_host = successor.id if successor else None
        self.state.set_host(new_host)
        if new_host:
            logger.info("👑 %s (%s) elected host", successor.name, new_host)
        return new_host
