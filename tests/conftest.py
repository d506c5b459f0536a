from __future__ import annotations

from types import SimpleNamespace

import pytest

import logger as log


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeCompletions:
    """Scripted ``chat.completions``: each call consumes the next reply.

    A reply may be a string, an exception to raise, or a callable returning
    an awaitable. The last reply repeats once the script runs out.
    """

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return await reply()
        return completion(reply)


class FakeAIClient:
    def __init__(self, *replies):
        self.completions = FakeCompletions(replies or ["Hello there!"])
        self.chat = SimpleNamespace(completions=self.completions)
        self.closed = False

    async def close(self):
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fake_client_factory():
    return FakeAIClient


@pytest.fixture(autouse=True)
def clean_security_events():
    log.clear_security_events()
    yield
    log.clear_security_events()
