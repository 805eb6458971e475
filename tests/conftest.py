import random

import pytest

import news
from desk import Desk
from models import Instrument, NewsEffect, Scope
from storage import MemoryStorage

START_MS = 1_700_000_000_000


class FakeClock:
    def __init__(self, now_ms: int = START_MS):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int = 0, seconds: float = 0):
        self.now_ms += ms + int(seconds * 1000)


def make_instrument(ticker="AAA", sector="Technology", price=100.0, volatility=0.0, history=None):
    return Instrument(
        ticker=ticker,
        name=f"{ticker} Corp",
        sector=sector,
        price=price,
        previous_price=price,
        volatility=volatility,
        price_history=list(history or []),
    )


def make_effect(scope=Scope.INSTRUMENT, target="AAA", modifier=0.05, days=1, eid="fx"):
    return NewsEffect(
        id=eid,
        scope=scope,
        target=target,
        direction="positive" if modifier >= 0 else "negative",
        strength="medium",
        days_remaining=days,
        modifier=modifier,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def flat_market():
    """Zero-volatility instruments, so only news effects move prices."""
    return [
        make_instrument("AAA", "Technology", 100.0),
        make_instrument("BBB", "Technology", 50.0),
        make_instrument("CCC", "Finance", 20.0),
    ]


@pytest.fixture
def quiet_pools():
    return news.empty_pools()


@pytest.fixture
def desk(clock, quiet_pools):
    return Desk(storage=MemoryStorage(), rng=random.Random(7), clock=clock, news_pools=quiet_pools)
