"""
Collaborator Interface Definitions

Structural contracts for the services the engine reads from and writes to.
Persistence, authentication and market data live behind these protocols.
"""

from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from .discipline.models import Trade, TradePlan

TradeLike = Union[Trade, Mapping[str, Any]]


@runtime_checkable
class TradeLedger(Protocol):
    """Append-only log of a user's trades. Order is not guaranteed."""

    def list_completed_trades(self, user_id: str) -> Iterable[TradeLike]:
        ...


@runtime_checkable
class PlanStore(Protocol):
    """A user's exit plans, keyed by the id of the trade they were placed with."""

    def load_plans(self, user_id: str) -> Mapping[str, TradePlan]:
        ...


@runtime_checkable
class AccountValuation(Protocol):
    """Cash plus marked holdings for a user's real paper account."""

    def current_value(self, user_id: str) -> float:
        ...


@runtime_checkable
class InstrumentCatalog(Protocol):
    """Tradable instruments and reference prices."""

    def universe(self) -> List[str]:
        ...

    def price_of(self, symbol: str) -> Optional[float]:
        ...

    def get(self, symbol: str) -> Optional[Any]:
        ...


@runtime_checkable
class PortfolioBackend(Protocol):
    """Durable storage for serialized phantom portfolio states."""

    def load(self, user_id: str) -> Optional[Dict[str, Any]]:
        ...

    def save(self, user_id: str, payload: Dict[str, Any]) -> None:
        ...
