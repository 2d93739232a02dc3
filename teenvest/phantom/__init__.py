"""
Phantom Portfolio Module

Deterministic copy-trading replication, per-user phantom portfolio storage
and paper trade execution.
"""

from .catalog import DEFAULT_INSTRUMENTS, Instrument, StaticInstrumentCatalog
from .executor import PhantomTradeExecutor, TradeResult, execute_trade
from .hashing import HASH_VERSION, mulberry32, seeded_sample, stable_hash
from .planner import (
    PlannedHolding,
    PortfolioReplicationPlanner,
    ReplicationPlan,
    basket_weights,
    format_ratio,
)
from .portfolio import (
    PhantomHolding,
    PhantomPortfolioState,
    PhantomSource,
    PhantomValuation,
    SourceType,
    value_portfolio,
)
from .store import InMemoryPortfolioBackend, PhantomPortfolioStore

__all__ = [
    # Catalog
    "Instrument",
    "StaticInstrumentCatalog",
    "DEFAULT_INSTRUMENTS",
    # Replication
    "PortfolioReplicationPlanner",
    "ReplicationPlan",
    "PlannedHolding",
    "basket_weights",
    "format_ratio",
    "HASH_VERSION",
    "stable_hash",
    "mulberry32",
    "seeded_sample",
    # State
    "PhantomPortfolioState",
    "PhantomHolding",
    "PhantomSource",
    "PhantomValuation",
    "SourceType",
    "value_portfolio",
    # Store and execution
    "PhantomPortfolioStore",
    "InMemoryPortfolioBackend",
    "PhantomTradeExecutor",
    "TradeResult",
    "execute_trade",
]
