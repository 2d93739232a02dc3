"""
Tests for the per-user phantom portfolio store.
"""

import threading
from unittest.mock import Mock

import pytest

from teenvest.core.errors import InsufficientCashError
from teenvest.phantom import (
    InMemoryPortfolioBackend,
    PhantomPortfolioState,
    PhantomPortfolioStore,
    PortfolioReplicationPlanner,
    SourceType,
)


@pytest.fixture
def store(clock):
    return PhantomPortfolioStore(clock=clock)


def buy(symbol="AAPL", shares=1, price=100.0):
    return {"symbol": symbol, "side": "buy", "shares": shares, "price": price}


class TestReads:
    """Tests for get and get_or_create."""

    def test_get_unknown_user(self, store):
        assert store.get("u1") is None

    def test_reads_of_unknown_users_allocate_no_locks(self, store):
        for n in range(100):
            store.get(f"ghost-{n}")
        assert store._locks == {}

        store.get_or_create("u1", 100.0)
        assert set(store._locks) == {"u1"}

    def test_get_or_create_is_fresh(self, store, clock):
        state = store.get_or_create("u1", 10_000.0)
        assert state.cash_balance == 10_000.0
        assert state.source.type == SourceType.MANUAL
        assert state.last_updated_at == clock()

    def test_get_or_create_keeps_existing(self, store):
        store.get_or_create("u1", 10_000.0)
        assert store.get_or_create("u1", 50.0).starting_balance == 10_000.0

    def test_reads_are_defensive_copies(self, store):
        store.get_or_create("u1", 1_000.0)
        snapshot = store.get("u1")
        snapshot.cash_balance = 0.0
        snapshot.holdings.append(Mock())
        fresh = store.get("u1")
        assert fresh.cash_balance == 1_000.0
        assert fresh.holdings == []

    def test_users_are_isolated(self, store):
        store.get_or_create("u1", 1_000.0)
        store.get_or_create("u2", 2_000.0)
        store.execute_trade("u1", buy(price=500.0))
        assert store.get("u2").cash_balance == 2_000.0


class TestWrites:
    """Tests for replace, reset and sync."""

    def test_replace_stamps_time(self, store, clock, funded_state):
        clock.advance(3600)
        stored = store.replace("u1", funded_state)
        assert stored.last_updated_at == clock()
        assert funded_state.last_updated_at != clock()

    def test_replace_stores_a_copy(self, store, funded_state):
        store.replace("u1", funded_state)
        funded_state.cash_balance = 0.0
        assert store.get("u1").cash_balance == 500.0

    def test_reset_defaults_to_starting_balance(self, store, funded_state, clock):
        store.replace("u1", funded_state)
        clock.advance(10)
        state = store.reset("u1")
        assert state.cash_balance == 1_000.0
        assert state.holdings == []
        assert state.last_updated_at == clock()

    def test_reset_with_balance(self, store, funded_state):
        store.replace("u1", funded_state)
        state = store.reset("u1", 250.0)
        assert state.starting_balance == 250.0
        assert state.cash_balance == 250.0

    def test_sync_from_copy(self, store):
        state = store.sync_from_copy("u1", PortfolioReplicationPlanner(), "guru-1", 50_000, 10_000)
        assert state.source.type == SourceType.COPY
        assert state.source.target_id == "guru-1"
        assert len(state.holdings) == 6
        assert store.get("u1") == state


class TestExecuteTrade:
    """Tests for trades routed through the store."""

    def test_success_is_persisted(self, store):
        store.get_or_create("u1", 1_000.0)
        result = store.execute_trade("u1", buy(shares=2))
        assert result.ok
        assert store.get("u1").cash_balance == 800.0
        assert store.get("u1").get_holding("AAPL").shares == 2

    def test_failure_leaves_stored_state(self, store):
        store.get_or_create("u1", 100.0)
        before = store.get("u1")
        result = store.execute_trade("u1", buy(shares=2))
        assert isinstance(result.error, InsufficientCashError)
        assert store.get("u1") == before

    def test_first_trade_funds_fresh_portfolio(self, store):
        result = store.execute_trade("u1", buy(), starting_balance=500.0)
        assert result.ok
        assert store.get("u1").cash_balance == 400.0

    def test_returned_state_is_detached(self, store):
        store.get_or_create("u1", 1_000.0)
        result = store.execute_trade("u1", buy())
        result.state.cash_balance = 0.0
        assert store.get("u1").cash_balance == 900.0

    def test_concurrent_buys_never_overdraw(self, store):
        store.get_or_create("u1", 1_000.0)
        results = []

        def worker():
            results.append(store.execute_trade("u1", buy(shares=1, price=100.0)))

        threads = [threading.Thread(target=worker) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(1 for r in results if r.ok) == 10
        state = store.get("u1")
        assert state.cash_balance == pytest.approx(0.0)
        assert state.get_holding("AAPL").shares == 10


class TestBackend:
    """Tests for durable backends."""

    def test_writes_through(self, clock):
        backend = InMemoryPortfolioBackend()
        store = PhantomPortfolioStore(backend=backend, clock=clock)
        store.get_or_create("u1", 1_000.0)
        store.execute_trade("u1", buy())
        assert backend.load("u1")["cashBalance"] == 900.0

    def test_loads_and_normalizes(self, clock):
        backend = InMemoryPortfolioBackend()
        backend.save(
            "u1",
            {"startingBalance": 1_000, "cashBalance": 600, "holdings": [{"symbol": "V", "shares": "x"}]},
        )
        store = PhantomPortfolioStore(backend=backend, clock=clock)
        state = store.get("u1")
        assert isinstance(state, PhantomPortfolioState)
        assert state.cash_balance == 600.0
        assert state.holdings == []

    def test_backend_loaded_once(self, clock):
        backend = Mock()
        backend.load.return_value = None
        store = PhantomPortfolioStore(backend=backend, clock=clock)
        store.get_or_create("u1", 100.0)
        store.get("u1")
        backend.load.assert_called_once_with("u1")
        backend.save.assert_called_once()
