"""
Phantom Portfolio Store

Holds one phantom portfolio per user. Reads return deep copies; every
mutation for a user runs under that user's lock so replace, reset and trade
calls never interleave. Different users never contend. A user's lock is
created with their first write (or backend read) and kept for the store's
lifetime. Without a backend, reads of unknown users never add one.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, Dict, Optional

from .executor import OrderInput, PhantomTradeExecutor, TradeResult
from .planner import PortfolioReplicationPlanner, ReplicationPlan
from .portfolio import PhantomPortfolioState, utc_now

logger = logging.getLogger(__name__)


class InMemoryPortfolioBackend:
    """Dict-backed PortfolioBackend storing serialized states."""

    def __init__(self):
        self._payloads: Dict[str, dict] = {}

    def load(self, user_id: str) -> Optional[dict]:
        return self._payloads.get(user_id)

    def save(self, user_id: str, payload: dict) -> None:
        self._payloads[user_id] = payload


class PhantomPortfolioStore:
    """
    Per-user phantom portfolio container.

    Args:
        backend: Optional PortfolioBackend; states are cached in memory and
            written through to it on every change
        executor: Trade executor (defaults to one sharing this store's clock)
        clock: Time source used to stamp ``last_updated_at``
    """

    def __init__(
        self,
        backend=None,
        executor: Optional[PhantomTradeExecutor] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.backend = backend
        self.clock = clock or utc_now
        self.executor = executor or PhantomTradeExecutor(self.clock)
        self._states: Dict[str, PhantomPortfolioState] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, user_id: str, create: bool = True) -> Optional[threading.Lock]:
        """Per-user lock; with ``create=False`` only an existing one is returned."""
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None and create:
                lock = threading.Lock()
                self._locks[user_id] = lock
            return lock

    def _load(self, user_id: str) -> Optional[PhantomPortfolioState]:
        state = self._states.get(user_id)
        if state is None and self.backend is not None:
            payload = self.backend.load(user_id)
            if payload is not None:
                state = PhantomPortfolioState.from_dict(payload)
                self._states[user_id] = state
        return state

    def _write(self, user_id: str, state: PhantomPortfolioState) -> None:
        self._states[user_id] = state
        if self.backend is not None:
            self.backend.save(user_id, state.to_dict())

    def get(self, user_id: str) -> Optional[PhantomPortfolioState]:
        """Snapshot of the user's portfolio, or None if none exists."""
        # Writes always create the lock, so without one or a backend nothing is stored.
        lock = self._lock_for(user_id, create=self.backend is not None)
        if lock is None:
            return None
        with lock:
            state = self._load(user_id)
            return state.copy() if state is not None else None

    def get_or_create(self, user_id: str, starting_balance: float) -> PhantomPortfolioState:
        """Snapshot, creating an all-cash manual portfolio on first access."""
        with self._lock_for(user_id):
            state = self._load(user_id)
            if state is None:
                state = PhantomPortfolioState.fresh(starting_balance, now=self.clock())
                self._write(user_id, state)
                logger.info(f"Created phantom portfolio for {user_id}")
            return state.copy()

    def replace(self, user_id: str, state: PhantomPortfolioState) -> PhantomPortfolioState:
        """Overwrite the user's portfolio, stamping ``last_updated_at``."""
        with self._lock_for(user_id):
            return self._replace_locked(user_id, state)

    def _replace_locked(self, user_id: str, state: PhantomPortfolioState) -> PhantomPortfolioState:
        stored = state.copy()
        stored.last_updated_at = self.clock()
        self._write(user_id, stored)
        return stored.copy()

    def reset(self, user_id: str, balance: Optional[float] = None) -> PhantomPortfolioState:
        """
        Replace the portfolio with fresh cash.

        Args:
            user_id: Portfolio owner
            balance: New balance; defaults to the current starting balance
        """
        with self._lock_for(user_id):
            if balance is None:
                current = self._load(user_id)
                balance = current.starting_balance if current is not None else 0.0
            fresh = PhantomPortfolioState.fresh(balance, now=self.clock())
            return self._replace_locked(user_id, fresh)

    def apply_plan(self, user_id: str, plan: ReplicationPlan) -> PhantomPortfolioState:
        """Replace the portfolio with one seeded from a replication plan."""
        with self._lock_for(user_id):
            return self._replace_locked(user_id, plan.to_state(now=self.clock()))

    def sync_from_copy(
        self,
        user_id: str,
        planner: PortfolioReplicationPlanner,
        target_id: str,
        target_value: float,
        user_value: float,
        holdings_count: Optional[int] = None,
    ) -> PhantomPortfolioState:
        """Plan a scaled basket for the target and replace the portfolio with it."""
        plan = planner.plan(
            target_id=target_id,
            target_value=target_value,
            user_value=user_value,
            holdings_count=holdings_count,
        )
        return self.apply_plan(user_id, plan)

    def execute_trade(
        self,
        user_id: str,
        order: OrderInput,
        starting_balance: float = 0.0,
    ) -> TradeResult:
        """
        Run an order against the user's portfolio.

        The stored state changes only when the trade succeeds. A user with no
        portfolio yet trades against a fresh one funded with
        ``starting_balance``.
        """
        with self._lock_for(user_id):
            current = self._load(user_id)
            if current is None:
                current = PhantomPortfolioState.fresh(starting_balance, now=self.clock())

            result = self.executor.execute(current, order)
            if result.ok:
                self._write(user_id, result.state)
                result.state = result.state.copy()
            return result
