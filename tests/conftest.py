from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from chatroom.service import ChatService
from chatroom.store import memory_storage


class FakeClock:
    """Callable stand-in for datetime.now that tests move by hand."""

    def __init__(self, start: datetime) -> None:
        self.moment = start

    def __call__(self) -> datetime:
        return self.moment

    def advance(self, seconds: float) -> None:
        self.moment += timedelta(seconds=seconds)


@pytest.fixture()
def clock():
    return FakeClock(datetime(2024, 5, 17, 12, 0, 0))


@pytest.fixture()
def storage():
    return memory_storage()


@pytest.fixture()
def service(storage, clock):
    return ChatService(storage, now=clock)
