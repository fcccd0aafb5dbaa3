"""
In-memory room state - host, ticket, vote tally and reveal flag
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Union

Vote = Union[int, float]


@dataclass(frozen=True)
class RoomSnapshot:
    """Immutable copy of the room handed to new joiners"""
    host_id: Optional[str]
    ticket: str
    revealed: bool
    votes: Mapping[str, Vote] = field(default_factory=dict)
    participants: Tuple[dict, ...] = ()

    def as_message(self) -> dict:
        return {
            "type": "roster",
            "participants": [dict(p) for p in self.participants],
            "hostId": self.host_id,
            "ticket": self.ticket,
            "revealed": self.revealed,
            "votes": dict(self.votes),
        }


class RoomState:
    """The single shared room record.

    Mutators only change the record; fan-out is the router's job.
    """

    def __init__(self) -> None:
        self.host_id: Optional[str] = None
        self.ticket: str = ""
        self.revealed: bool = False
        self.votes: Dict[str, Vote] = {}

    def set_host(self, participant_id: Optional[str]) -> None:
        self.host_id = participant_id

    def set_ticket(self, title: str) -> None:
        # New ticket always starts with a clean, hidden tally
        self.ticket = title
        self.reset_votes()

    def reveal(self) -> None:
        self.revealed = True

    def reset_votes(self) -> None:
        self.votes.clear()
        self.revealed = False

    def cast_vote(self, participant_id: str, value: Optional[Vote]) -> None:
        if value is None:
            self.votes.pop(participant_id, None)
        else:
            self.votes[participant_id] = value

    def remove_vote(self, participant_id: str) -> bool:
        return self.votes.pop(participant_id, None) is not None

    def clear(self) -> None:
        """Back to the state of a freshly started process"""
        self.host_id = None
        self.ticket = ""
        self.reset_votes()

    def is_initial(self) -> bool:
        return self.host_id is None and not self.ticket and not self.revealed and not self.votes

    def snapshot(self, participants=()) -> RoomSnapshot:
        return RoomSnapshot(
            host_id=self.host_id,
            ticket=self.ticket,
            revealed=self.revealed,
            votes=MappingProxyType(dict(self.votes)),
            participants=tuple(p.as_dict() for p in participants),
        )
