import itertools

import pytest

from backend import ConnectionRegistry, PresenceState, RoomDirectory
from relay import EventRouter


class ColorSequence:
    """Deterministic stand-in for the random color generator."""

    def __init__(self):
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return "#{:06x}".format(next(self._counter))


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def directory():
    return RoomDirectory()


@pytest.fixture
def state(registry, directory):
    return PresenceState(registry=registry, directory=directory)


@pytest.fixture
def relay(state):
    return EventRouter(state, color_factory=ColorSequence())
