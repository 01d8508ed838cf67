import pytest

from tests.helpers.fakes_feed import FakeGateway, VirtualClock
from workers.feed_engine import FeedEngine


@pytest.fixture
def clock():
    return VirtualClock()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def make_engine(clock, gateway):
    engines = []

    def _make(**kwargs):
        kwargs.setdefault("feed_url", "https://feed.test/upstox")
        kwargs.setdefault("feed_name", "upstox")
        engine = FeedEngine(gateway=gateway, clock=clock, **kwargs)
        engines.append(engine)
        return engine

    yield _make

    for engine in engines:
        engine.close()
