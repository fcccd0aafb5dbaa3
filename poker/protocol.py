"""
Wire protocol for the room socket: JSON objects discriminated by "type"
"""
import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

logger = logging.getLogger("planning_poker")

# Client -> server (cursor, chat, vote, ticket, reveal, reset, host are echoed back)
JOIN = "join"
CURSOR = "cursor"
CHAT = "chat"
LEAVE = "leave"
VOTE = "vote"
TICKET = "ticket"
REVEAL = "reveal"
RESET = "reset"
HOST = "host"

# Server -> client only
ROSTER = "roster"
JOINED = "joined"
PRESENCE = "presence"

HOST_ONLY = frozenset({TICKET, REVEAL, RESET, HOST})


@dataclass(frozen=True)
class Delivery:
    targets: Tuple[Any, ...]
    message: dict


@dataclass(frozen=True)
class Outcome:
    """What the transport must do after an event was routed"""
    deliveries: Tuple[Delivery, ...] = ()
    close: Tuple[Any, ...] = ()
    ignored: bool = False

    def messages_for(self, connection) -> list:
        return [d.message for d in self.deliveries if connection in d.targets]


IGNORED = Outcome(ignored=True)


def _reject_constant(name: str):
    raise ValueError(f"non-finite number {name}")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number out of range: {text}")
    return value


def parse_event(raw: Union[str, bytes]) -> Optional[dict]:
    """Decode one inbound frame, returning None for anything unusable"""
    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        event = json.loads(raw, parse_constant=_reject_constant, parse_float=_finite_float)
    except (UnicodeDecodeError, ValueError) as e:
        logger.debug(f"Dropping malformed frame: {e}")
        return None

    if not isinstance(event, dict) or not isinstance(event.get("type"), str):
        logger.debug("Dropping frame without a type")
        return None
    return event


def encode(message: dict) -> str:
    return json.dumps(message, separators=(",", ":"), allow_nan=False)


def is_vote_value(value) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


# ============================================================
# OUTBOUND MESSAGES
# ============================================================

def joined_message(participant_id: str) -> dict:
    return {"type": JOINED, "id": participant_id}


def presence_message(participant_id: str, name: str) -> dict:
    return {"type": PRESENCE, "id": participant_id, "name": name}


def leave_message(participant_id: str) -> dict:
    return {"type": LEAVE, "id": participant_id}


def host_message(host_id: Optional[str]) -> dict:
    return {"type": HOST, "hostId": host_id}


def cursor_message(participant_id: str, name: str, x, y) -> dict:
    return {"type": CURSOR, "id": participant_id, "name": name, "x": x, "y": y}


def chat_message(event: dict) -> dict:
    return {
        "type": CHAT,
        "id": event.get("id"),
        "name": event.get("name"),
        "text": event.get("text"),
        "ts": event.get("ts"),
    }


def vote_message(participant_id: str, name, value) -> dict:
    return {"type": VOTE, "id": participant_id, "name": name, "value": value}


def ticket_message(title: str) -> dict:
    return {"type": TICKET, "title": title}


def reveal_message() -> dict:
    return {"type": REVEAL}


def reset_message() -> dict:
    return {"type": RESET}
