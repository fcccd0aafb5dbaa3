"""
Event router - parses inbound frames, authorizes host-only actions,
mutates the room and decides who hears about it
"""
import logging
from typing import Any, Union

from . import protocol
from .presence import PresenceManager
from .protocol import IGNORED, Delivery, Outcome
from .registry import ConnectionRegistry
from .state import RoomState

logger = logging.getLogger("planning_poker")


class EventRouter:
    """Owns the one room and turns (connection, frame) into an Outcome.

    Rejected input of any kind returns ``IGNORED``: nothing changes and
    nobody is told.
    """

    def __init__(self, state: RoomState = None, registry: ConnectionRegistry = None) -> None:
        self.state = state if state is not None else RoomState()
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.presence = PresenceManager(self.state, self.registry)
        self._handlers = {
            protocol.JOIN: self._on_join,
            protocol.CURSOR: self._on_cursor,
            protocol.CHAT: self._on_chat,
            protocol.LEAVE: self._on_leave,
            protocol.VOTE: self._on_vote,
            protocol.TICKET: self._on_ticket,
            protocol.REVEAL: self._on_reveal,
            protocol.RESET: self._on_reset,
            protocol.HOST: self._on_host,
        }

    # ============================================================
    # TRANSPORT ENTRY POINTS
    # ============================================================

    def handle_open(self, connection: Any) -> Outcome:
        # Connections stay inert until they join
        return Outcome()

    def handle_message(self, connection: Any, raw: Union[str, bytes]) -> Outcome:
        event = protocol.parse_event(raw)
        if event is None:
            return IGNORED

        event_type = event["type"]
        handler = self._handlers.get(event_type)
        if handler is None:
            logger.debug(f"Ignoring unknown event type {event_type!r}")
            return IGNORED

        if event_type in protocol.HOST_ONLY and not self._sent_by_host(event):
            logger.debug(f"Ignoring {event_type} from non-host {event.get('id')!r}")
            return IGNORED

        return handler(connection, event)

    def handle_close(self, connection: Any) -> Outcome:
        return self.presence.depart(connection)

    # ============================================================
    # HELPERS
    # ============================================================

    def _sent_by_host(self, event: dict) -> bool:
        claimed = event.get("id")
        return isinstance(claimed, str) and claimed != "" and claimed == self.state.host_id

    def _everyone(self) -> tuple:
        return tuple(self.registry.connections())

    def _broadcast(self, message: dict) -> Outcome:
        return Outcome(deliveries=(Delivery(self._everyone(), message),))

    # ============================================================
    # HANDLERS
    # ============================================================

    def _on_join(self, connection, event):
        participant_id = event.get("id")
        if not isinstance(participant_id, str) or not participant_id:
            return IGNORED
        name = event.get("name")
        if name is None:
            name = ""
        elif not isinstance(name, str):
            return IGNORED
        return self.presence.join(connection, participant_id, name)

    def _on_cursor(self, connection, event):
        participant = self.registry.lookup(connection)
        if participant is None:
            return IGNORED
        others = tuple(c for c in self.registry.connections() if c is not connection)
        message = protocol.cursor_message(participant.id, participant.name, event.get("x"), event.get("y"))
        return Outcome(deliveries=(Delivery(others, message),))

    def _on_chat(self, connection, event):
        return self._broadcast(protocol.chat_message(event))

    def _on_leave(self, connection, event):
        departed = self.presence.depart(connection)
        return Outcome(deliveries=departed.deliveries, close=(connection,))

    def _on_vote(self, connection, event):
        participant_id = event.get("id")
        value = event.get("value")
        if not isinstance(participant_id, str) or not self.registry.has_participant(participant_id):
            return IGNORED
        if not protocol.is_vote_value(value):
            return IGNORED
        self.state.cast_vote(participant_id, value)
        return self._broadcast(protocol.vote_message(participant_id, event.get("name"), value))

    def _on_ticket(self, connection, event):
        title = event.get("title")
        if title is None:
            title = ""
        elif not isinstance(title, str):
            return IGNORED
        self.state.set_ticket(title)
        logger.info("🎫 Ticket set: %r", title)
        return self._broadcast(protocol.ticket_message(title))

    def _on_reveal(self, connection, event):
        self.state.reveal()
        logger.info("🃏 Votes revealed (%d cast)", len(self.state.votes))
        return self._broadcast(protocol.reveal_message())

    def _on_reset(self, connection, event):
        self.state.reset_votes()
        logger.info("🔄 Votes reset")
        return self._broadcast(protocol.reset_message())

    def _on_host(self, connection, event):
        target = event.get("targetId")
        if target is None:
            target = event.get("hostId")
        if not isinstance(target, str) or not target:
            return IGNORED
        return self.presence.transfer_host(target)
