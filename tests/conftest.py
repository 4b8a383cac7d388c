# tests/conftest.py - Shared fixtures: controllable clock, in-memory store, fake HTTP responses
from unittest.mock import MagicMock

import pytest

from utils.store import InMemoryStore, StoreUnavailable


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class BrokenStore:
    """Store whose every call fails, as when Redis is unreachable."""

    def __init__(self):
        self.calls = 0

    def _fail(self, *args, **kwargs):
        self.calls += 1
        raise StoreUnavailable("connection refused")

    get = set = incr = expire = ttl = _fail


def _make_response(text="", status_code=200, content_type="text/html; charset=utf-8", content=None, json_data=None,
                   headers=None):
    body = content if content is not None else text.encode("utf-8")
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.content = body
    response.headers = {"Content-Type": content_type, **(headers or {})}
    response.iter_content.side_effect = lambda chunk_size=1, decode_unicode=False: iter([body])
    if json_data is not None:
        response.json.return_value = json_data
    return response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryStore(clock=clock)


@pytest.fixture
def broken_store():
    return BrokenStore()


@pytest.fixture
def make_response():
    return _make_response
