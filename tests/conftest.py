"""
Shared fixtures for planning poker tests.
"""
import json

import pytest

from poker.router import EventRouter


def frame(**fields) -> str:
    return json.dumps(fields)


class Conn:
    """Stand-in for a socket; only identity matters to the router."""

    def __init__(self, label: str):
        self.label = label

    def __repr__(self):
        return f"Conn({self.label})"


@pytest.fixture
def router():
    return EventRouter()


@pytest.fixture
def conns():
    return Conn("a"), Conn("b"), Conn("c")
