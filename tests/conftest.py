"""
Shared pytest fixtures and configuration for Burrow tests.
"""

import pytest

from burrow import create_store


class EventLog(list):
    """Store listener that records every (state, event, args) notification."""

    def __call__(self, state, event, args):
        self.append({"state": state, "event": event, "args": args})

    @property
    def states(self):
        return [entry["state"] for entry in self]

    @property
    def events(self):
        return [entry["event"] for entry in self]


@pytest.fixture
def event_log():
    """Provide a fresh recording listener."""
    return EventLog()


@pytest.fixture
def counter():
    """Provide a counter store with inc/add/boom updates."""

    def boom(state, args):
        raise RuntimeError("explode")

    return create_store(
        0,
        {
            "inc": lambda state, args: state + 1,
            "add": lambda state, args: state + args["n"],
            "boom": boom,
        },
    )
