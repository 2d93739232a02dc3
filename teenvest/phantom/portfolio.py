"""
Phantom Portfolio State

Data structures for a user's phantom (paper) portfolio: holdings at
weighted-average cost, cash, provenance, serialization and mark-to-market
valuation.
"""

import copy
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SourceType(Enum):
    """How the current phantom state came to be."""

    COPY = "copy"
    MANUAL = "manual"


@dataclass
class PhantomSource:
    """Provenance of a phantom portfolio."""

    type: SourceType = SourceType.MANUAL
    target_id: Optional[str] = None
    ratio: Optional[float] = None
    guru_value: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type.value}
        if self.target_id is not None:
            data["targetId"] = self.target_id
        if self.ratio is not None:
            data["ratio"] = self.ratio
        if self.guru_value is not None:
            data["guruValue"] = self.guru_value
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "PhantomSource":
        if not isinstance(data, Mapping):
            return cls()
        try:
            source_type = SourceType(data.get("type"))
        except ValueError:
            source_type = SourceType.MANUAL
        return cls(
            type=source_type,
            target_id=data.get("targetId"),
            ratio=_finite_or_none(data.get("ratio")),
            guru_value=_finite_or_none(data.get("guruValue")),
        )


@dataclass
class PhantomHolding:
    """A phantom position held at weighted-average cost."""

    symbol: str
    company_name: str
    shares: float
    average_cost: float

    @property
    def cost_basis(self) -> float:
        return self.shares * self.average_cost

    def market_value(self, price: float) -> float:
        return self.shares * price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "companyName": self.company_name,
            "shares": self.shares,
            "averageCost": self.average_cost,
        }


def _finite_or_none(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _normalize_balance(value: Any) -> float:
    number = _finite_or_none(value)
    return number if number is not None else 0.0


def _normalize_holdings(raw: Any) -> List[PhantomHolding]:
    """Drop unusable stored holdings instead of failing the whole load."""
    if not isinstance(raw, list):
        return []

    holdings = []
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        symbol = item.get("symbol")
        if not isinstance(symbol, str) or not symbol:
            continue
        shares = _finite_or_none(item.get("shares"))
        if shares is None or shares <= 0:
            continue
        company_name = item.get("companyName")
        if not isinstance(company_name, str):
            company_name = symbol
        average_cost = _finite_or_none(item.get("averageCost"))
        holdings.append(
            PhantomHolding(
                symbol=symbol,
                company_name=company_name,
                shares=shares,
                average_cost=average_cost if average_cost is not None and average_cost > 0 else 0.0,
            )
        )
    return holdings


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


@dataclass
class PhantomPortfolioState:
    """Complete phantom portfolio for one user."""

    starting_balance: float
    cash_balance: float
    holdings: List[PhantomHolding] = field(default_factory=list)
    last_updated_at: datetime = field(default_factory=utc_now)
    source: PhantomSource = field(default_factory=PhantomSource)

    @classmethod
    def fresh(cls, balance: float, now: Optional[datetime] = None) -> "PhantomPortfolioState":
        """All-cash manual portfolio."""
        balance = _normalize_balance(balance)
        return cls(
            starting_balance=balance,
            cash_balance=balance,
            holdings=[],
            last_updated_at=now or utc_now(),
            source=PhantomSource(),
        )

    def get_holding(self, symbol: str) -> Optional[PhantomHolding]:
        for holding in self.holdings:
            if holding.symbol == symbol:
                return holding
        return None

    @property
    def total_cost_basis(self) -> float:
        return sum(h.cost_basis for h in self.holdings)

    def copy(self) -> "PhantomPortfolioState":
        """Deep copy safe to hand to callers."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startingBalance": self.starting_balance,
            "cashBalance": self.cash_balance,
            "holdings": [h.to_dict() for h in self.holdings],
            "lastUpdatedAt": self.last_updated_at.isoformat(),
            "source": self.source.to_dict(),
        }

    @classmethod
    def from_dict(
        cls,
        data: Any,
        default_balance: float = 0.0,
    ) -> "PhantomPortfolioState":
        """
        Load a stored state, normalizing anything unusable.

        Args:
            data: Stored payload (may be partial or corrupt)
            default_balance: Starting balance when the payload has none
        """
        if not isinstance(data, Mapping):
            return cls.fresh(default_balance)

        starting = data.get("startingBalance")
        starting_balance = _normalize_balance(default_balance if starting is None else starting)
        cash = data.get("cashBalance")
        cash_balance = _normalize_balance(starting_balance if cash is None else cash)

        return cls(
            starting_balance=starting_balance,
            cash_balance=cash_balance,
            holdings=_normalize_holdings(data.get("holdings")),
            last_updated_at=_parse_datetime(data.get("lastUpdatedAt")) or utc_now(),
            source=PhantomSource.from_dict(data.get("source")),
        )

    def to_dataframe(self, prices: Optional[Dict[str, float]] = None) -> pd.DataFrame:
        """
        Holdings as a DataFrame with market value and weight columns.

        Args:
            prices: Current prices; holdings without one are marked at cost
        """
        if not self.holdings:
            return pd.DataFrame()

        prices = prices or {}
        df = pd.DataFrame([h.to_dict() for h in self.holdings])
        df["price"] = [prices.get(h.symbol, h.average_cost) for h in self.holdings]
        df["marketValue"] = df["shares"] * df["price"]
        df["costBasis"] = df["shares"] * df["averageCost"]

        total = df["marketValue"].sum() + self.cash_balance
        if total > 0:
            df["weight"] = df["marketValue"] / total * 100
        else:
            df["weight"] = 0.0

        return df


@dataclass
class PhantomValuation:
    """Mark-to-market summary of a phantom portfolio."""

    invested_value: float
    cash_balance: float
    total_value: float
    starting_balance: float
    total_gain: float
    gain_percent: float
    sector_exposure: Dict[str, float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "investedValue": round(self.invested_value, 2),
            "cashBalance": round(self.cash_balance, 2),
            "totalValue": round(self.total_value, 2),
            "startingBalance": round(self.starting_balance, 2),
            "totalGain": round(self.total_gain, 2),
            "gainPercent": round(self.gain_percent, 2),
            "sectorExposure": {k: round(v, 2) for k, v in self.sector_exposure.items()},
        }


def value_portfolio(
    state: PhantomPortfolioState,
    catalog=None,
    prices: Optional[Dict[str, float]] = None,
) -> PhantomValuation:
    """
    Mark a phantom portfolio to market.

    Each holding is priced from ``prices``, then the catalog, then its own
    average cost. Sector exposure is market value per catalog sector.

    Args:
        state: Portfolio to value
        catalog: Optional instrument catalog for fallback prices and sectors
        prices: Optional live quotes by symbol
    """
    prices = prices or {}
    invested = 0.0
    sectors: Dict[str, float] = {}

    for holding in state.holdings:
        price = _finite_or_none(prices.get(holding.symbol))
        if price is None and catalog is not None:
            price = _finite_or_none(catalog.price_of(holding.symbol))
        if price is None:
            price = holding.average_cost

        value = holding.market_value(price)
        invested += value

        sector = "Other"
        if catalog is not None:
            instrument = catalog.get(holding.symbol)
            if instrument is not None:
                sector = instrument.sector
        sectors[sector] = sectors.get(sector, 0.0) + value

    cash = _normalize_balance(state.cash_balance)
    total = invested + cash
    starting = _normalize_balance(state.starting_balance)
    gain = total - starting
    gain_percent = (gain / starting) * 100 if starting > 0 else 0.0

    return PhantomValuation(
        invested_value=invested,
        cash_balance=cash,
        total_value=total,
        starting_balance=starting,
        total_gain=gain,
        gain_percent=gain_percent,
        sector_exposure=sectors,
    )
