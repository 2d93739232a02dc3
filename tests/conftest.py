"""
Shared test fixtures for the Teenvest test suite.
"""

from datetime import datetime, timedelta, timezone

import pytest

from teenvest.config.settings import TeenvestSettings, clear_settings_cache
from teenvest.discipline.models import Trade, TradeSide
from teenvest.phantom.portfolio import PhantomHolding, PhantomPortfolioState

BASE_TS = 1_700_000_000_000  # epoch ms


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 2, 15, 30, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds=1):
        self.now = self.now + timedelta(seconds=seconds)


def _make_trade(
    trade_id,
    side,
    price,
    offset_ms=0,
    symbol="AAPL",
    shares=10,
    total_amount=None,
    entry_price=None,
):
    """Completed trade at BASE_TS + offset_ms."""
    return Trade(
        id=trade_id,
        symbol=symbol,
        side=TradeSide(side),
        shares=shares,
        executed_price=price,
        timestamp=BASE_TS + offset_ms,
        total_amount=shares * price if total_amount is None else total_amount,
        entry_price=entry_price,
    )


@pytest.fixture
def make_trade():
    """Factory for completed trades offset from a fixed base timestamp."""
    return _make_trade


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def settings():
    """Settings with defaults only, independent of the environment."""
    return TeenvestSettings(_env_file=None)


@pytest.fixture
def funded_state(clock):
    """$1,000 portfolio holding 10 AAPL @ 100 with $500 cash."""
    return PhantomPortfolioState(
        starting_balance=1000.0,
        cash_balance=500.0,
        holdings=[PhantomHolding("AAPL", "Apple Inc.", 10.0, 100.0)],
        last_updated_at=clock(),
    )
