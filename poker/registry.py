"""
Connection registry - which participant is bound to which live connection
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Participant:
    id: str
    name: str

    def as_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class ConnectionRegistry:
    """Maps each connection to at most one participant.

    Enumeration follows bind order, so the first entry is always the
    longest-connected participant.
    """

    def __init__(self) -> None:
        self._bindings: Dict[Any, Participant] = {}

    def bind(self, connection: Any, participant: Participant) -> None:
        # Rebinding keeps the connection's original position
        self._bindings[connection] = participant

    def unbind(self, connection: Any) -> Optional[Participant]:
        return self._bindings.pop(connection, None)

    def lookup(self, connection: Any) -> Optional[Participant]:
        return self._bindings.get(connection)

    def all(self) -> List[Participant]:
        return list(self._bindings.values())

    def connections(self) -> List[Any]:
        return list(self._bindings)

    def has_participant(self, participant_id: str) -> bool:
        return any(p.id == participant_id for p in self._bindings.values())

    def first(self) -> Optional[Participant]:
        return next(iter(self._bindings.values()), None)

    def __len__(self) -> int:
        return len(self._bindings)

    def __contains__(self, connection: Any) -> bool:
        return connection in self._bindings
