"""
Portfolio Replication Planner

Scales a target trader's aggregate value into the observing user's capital.
The target's literal positions are not observable, so a representative
basket is derived deterministically from the target id: the same target
always maps to the same symbols and weights.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np

from ..core.errors import DegenerateInputError
from ..config.settings import ReplicationConfig, WeightingScheme
from .catalog import StaticInstrumentCatalog
from .hashing import HASH_VERSION, seeded_sample, stable_hash
from .portfolio import PhantomHolding, PhantomPortfolioState, PhantomSource, SourceType, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannedHolding:
    """One line of a replicated basket."""

    symbol: str
    company_name: str
    phantom_shares: float
    price: float
    weight: float
    target_allocation: float
    phantom_value: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "companyName": self.company_name,
            "phantomShares": self.phantom_shares,
            "price": self.price,
            "weight": self.weight,
            "targetAllocation": self.target_allocation,
            "phantomValue": self.phantom_value,
        }


@dataclass(frozen=True)
class ReplicationPlan:
    """Scaled basket plus leftover cash for a user copying a target."""

    target_id: str
    ratio: float
    user_value: float
    target_value: float
    cash_remainder: float
    holdings: List[PlannedHolding] = field(default_factory=list)
    weighting: WeightingScheme = WeightingScheme.RANK
    hash_version: int = HASH_VERSION

    @property
    def phantom_total(self) -> float:
        """Value placed in holdings."""
        return sum(h.phantom_value for h in self.holdings)

    @property
    def is_all_cash(self) -> bool:
        return not self.holdings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "targetId": self.target_id,
            "ratio": self.ratio,
            "userValue": self.user_value,
            "targetValue": self.target_value,
            "cashRemainder": self.cash_remainder,
            "phantomTotal": self.phantom_total,
            "weighting": self.weighting.value,
            "hashVersion": self.hash_version,
            "holdings": [h.to_dict() for h in self.holdings],
        }

    def to_state(self, now: Optional[datetime] = None) -> PhantomPortfolioState:
        """Phantom portfolio seeded from this plan, held at plan prices."""
        return PhantomPortfolioState(
            starting_balance=self.user_value,
            cash_balance=self.cash_remainder,
            holdings=[
                PhantomHolding(
                    symbol=h.symbol,
                    company_name=h.company_name,
                    shares=h.phantom_shares,
                    average_cost=h.price,
                )
                for h in self.holdings
            ],
            last_updated_at=now or utc_now(),
            source=PhantomSource(
                type=SourceType.COPY,
                target_id=self.target_id,
                ratio=self.ratio,
                guru_value=self.target_value,
            ),
        )


def basket_weights(count: int, scheme: WeightingScheme) -> np.ndarray:
    """
    Weights for a basket of ``count`` symbols, summing to 1.

    RANK gives the i-th pick (0-based) ``(count - i) / (count * (count + 1) / 2)``,
    so the first pick carries the most weight; EQUAL gives ``1 / count``.
    """
    if count <= 0:
        return np.array([], dtype=float)
    if scheme == WeightingScheme.EQUAL:
        return np.full(count, 1.0 / count)
    ranks = np.arange(count, 0, -1, dtype=float)
    return ranks / ranks.sum()


def floor_to_precision(value: float, places: int) -> float:
    """Round down to ``places`` decimals; never rounds up."""
    factor = 10 ** places
    return math.floor(value * factor) / factor


def format_ratio(user_value: float, target_value: float) -> str:
    """
    Human-readable copy ratio, e.g. ``"2.00 : 1"`` or ``"1 : 4.00"``.

    Returns ``"-"`` when either value is not positive.
    """
    if target_value <= 0 or user_value <= 0:
        return "-"
    ratio = user_value / target_value
    if ratio >= 1:
        return f"{ratio:.2f} : 1"
    return f"1 : {1 / ratio:.2f}"


class PortfolioReplicationPlanner:
    """
    Derive a proportionally scaled phantom basket for a copy target.

    Selection: the catalog universe (sorted) is sampled without replacement
    using a Mulberry32 stream seeded with the FNV-1a hash of the target id.
    Sizing: ``user_value * weight`` per symbol, shares floored to the
    configured precision so rounding always leaves cash, never overdraws.
    """

    def __init__(self, catalog=None, config: Optional[ReplicationConfig] = None):
        self.catalog = catalog if catalog is not None else StaticInstrumentCatalog()
        self.config = config or ReplicationConfig()

    def plan(
        self,
        target_id: str,
        target_value: float,
        user_value: float,
        holdings_count: Optional[int] = None,
    ) -> ReplicationPlan:
        """
        Build the replication plan.

        Args:
            target_id: Identifier of the trader being copied
            target_value: Target's aggregate portfolio value
            user_value: Observing user's portfolio value
            holdings_count: Basket size (defaults to config)

        Returns:
            ReplicationPlan; all-cash with ratio 0 for degenerate input
        """
        target_value = _safe_value(target_value)
        user_value = _safe_value(user_value)
        count = self.config.holdings_count if holdings_count is None else holdings_count

        if not target_id or target_value <= 0 or user_value <= 0:
            DegenerateInputError(
                detail=f"target {target_id!r} planned as all cash",
                context={"target_value": target_value, "user_value": user_value},
            ).log()
            return self._all_cash(target_id or "", target_value, user_value)

        ratio = user_value / target_value
        seed = stable_hash(target_id)
        picks = seeded_sample(sorted(self.catalog.universe()), count, seed)
        weights = basket_weights(len(picks), self.config.weighting)

        holdings: List[PlannedHolding] = []
        for symbol, weight in zip(picks, weights):
            price = self.catalog.price_of(symbol)
            if price is None or not math.isfinite(price) or price <= 0:
                logger.debug(f"Omitting {symbol}: no usable price")
                continue

            allocation = user_value * float(weight)
            shares = floor_to_precision(allocation / price, self.config.share_precision)
            if shares <= 0:
                logger.debug(f"Omitting {symbol}: allocation {allocation:.2f} buys no shares")
                continue

            instrument = self.catalog.get(symbol)
            holdings.append(
                PlannedHolding(
                    symbol=symbol,
                    company_name=instrument.company_name if instrument else symbol,
                    phantom_shares=shares,
                    price=price,
                    weight=float(weight),
                    target_allocation=target_value * float(weight),
                    phantom_value=shares * price,
                )
            )

        invested = sum(h.phantom_value for h in holdings)
        cash_remainder = max(0.0, user_value - invested)

        logger.debug(
            f"Planned {len(holdings)} holdings for target {target_id} "
            f"(seed={seed}, ratio={ratio:.6f})"
        )

        return ReplicationPlan(
            target_id=target_id,
            ratio=ratio,
            user_value=user_value,
            target_value=target_value,
            cash_remainder=cash_remainder,
            holdings=holdings,
            weighting=self.config.weighting,
        )

    def _all_cash(self, target_id: str, target_value: float, user_value: float) -> ReplicationPlan:
        return ReplicationPlan(
            target_id=target_id,
            ratio=0.0,
            user_value=user_value,
            target_value=target_value,
            cash_remainder=user_value,
            holdings=[],
            weighting=self.config.weighting,
        )


def _safe_value(value: Any) -> float:
    """Finite, non-negative float; anything else becomes 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return max(0.0, number)
