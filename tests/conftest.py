"""Shared fixtures: temp store/sandbox and fake provider/transport."""

from datetime import date
from types import SimpleNamespace

import pytest

from musebot.config.schema import MemoryConfig
from musebot.errors import ProviderCallError
from musebot.memory.store import MemoryStore
from musebot.posting.transport import PostResult
from musebot.providers.base import LLMResponse
from musebot.sandbox.filesystem import PathSandbox


class FakeProvider:
    """Returns scripted replies in order; an Exception entry is raised as ProviderCallError."""

    def __init__(self, replies=None, default="I wonder about the stars."):
        self.replies = list(replies or [])
        self.default = default
        self.calls = []

    async def chat(self, messages, model=None, max_tokens=1000, temperature=0.7):
        self.calls.append(
            SimpleNamespace(messages=messages, model=model, max_tokens=max_tokens, temperature=temperature)
        )
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise ProviderCallError(str(reply))
        return LLMResponse(content=reply)


class FakeTransport:
    def __init__(self, succeed=True):
        self.succeed = succeed
        self.posts = []

    async def post(self, text):
        self.posts.append(text)
        if not self.succeed:
            return PostResult(success=False, error="boom")
        return PostResult(success=True, post_id=str(len(self.posts)), url=f"https://example.com/{len(self.posts)}")


class FakeClock:
    """Injectable time source for the rate gate."""

    def __init__(self, now=1_000_000.0, today=date(2026, 1, 1)):
        self.now = now
        self.today = today

    def time(self):
        return self.now

    def date(self):
        return self.today


@pytest.fixture
def memory(tmp_path):
    return MemoryStore(tmp_path / "memory", MemoryConfig())


@pytest.fixture
def sandbox(tmp_path):
    return PathSandbox(tmp_path / "sandbox")


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def clock():
    return FakeClock()
