"""
Phantom Trade Executor

Applies buy and sell orders to a phantom portfolio with weighted-average
cost accounting. Business-rule failures come back as a TradeResult, never
as raised exceptions, and the input state is never modified.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Union

from ..core.errors import (
    InsufficientCashError,
    InsufficientSharesError,
    NoSuchPositionError,
    TeenvestError,
    ValidationError,
)
from ..validation import OrderSide, PhantomOrder, parse_order
from .portfolio import PhantomHolding, PhantomPortfolioState, PhantomSource, utc_now

logger = logging.getLogger(__name__)

# Remaining share counts at or below this are treated as a closed position.
SHARE_EPSILON = 1e-9

OrderInput = Union[PhantomOrder, Mapping[str, Any]]


@dataclass
class TradeResult:
    """Outcome of a phantom trade: the new state or a typed error."""

    ok: bool
    state: Optional[PhantomPortfolioState] = None
    error: Optional[TeenvestError] = None
    order: Optional[PhantomOrder] = None

    @classmethod
    def success(cls, state: PhantomPortfolioState, order: PhantomOrder) -> "TradeResult":
        return cls(ok=True, state=state, order=order)

    @classmethod
    def failure(cls, error: TeenvestError, order: Optional[PhantomOrder] = None) -> "TradeResult":
        return cls(ok=False, error=error, order=order)

    @property
    def error_message(self) -> Optional[str]:
        return self.error.user_message if self.error else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "state": self.state.to_dict() if self.state else None,
            "error": self.error.to_dict() if self.error else None,
        }


class PhantomTradeExecutor:
    """Validate and apply phantom orders."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or utc_now

    def execute(self, state: PhantomPortfolioState, order: OrderInput) -> TradeResult:
        """
        Apply an order to a state.

        Args:
            state: Current phantom portfolio (left untouched)
            order: PhantomOrder or raw order mapping

        Returns:
            TradeResult with the new state on success
        """
        try:
            order = parse_order(order)
        except ValidationError as e:
            logger.info(f"Rejected phantom order: {e.technical_message}")
            return TradeResult.failure(e)

        if order.side == OrderSide.BUY:
            return self._buy(state, order)
        return self._sell(state, order)

    def _buy(self, state: PhantomPortfolioState, order: PhantomOrder) -> TradeResult:
        total = order.total
        if total > state.cash_balance:
            return TradeResult.failure(
                InsufficientCashError(
                    detail=f"cost {total:.2f} exceeds cash {state.cash_balance:.2f}",
                    context={"symbol": order.symbol},
                ),
                order,
            )

        holdings = [
            PhantomHolding(h.symbol, h.company_name, h.shares, h.average_cost)
            for h in state.holdings
        ]
        index = _find(holdings, order.symbol)

        if index is None:
            holdings.append(
                PhantomHolding(
                    symbol=order.symbol,
                    company_name=order.company_name or order.symbol,
                    shares=order.shares,
                    average_cost=order.price,
                )
            )
        else:
            existing = holdings[index]
            new_shares = existing.shares + order.shares
            new_avg_cost = (existing.shares * existing.average_cost + total) / new_shares
            holdings[index] = PhantomHolding(
                symbol=existing.symbol,
                company_name=existing.company_name,
                shares=new_shares,
                average_cost=new_avg_cost,
            )

        new_state = PhantomPortfolioState(
            starting_balance=state.starting_balance,
            cash_balance=max(0.0, state.cash_balance - total),
            holdings=holdings,
            last_updated_at=self.clock(),
            source=PhantomSource(),
        )
        return TradeResult.success(new_state, order)

    def _sell(self, state: PhantomPortfolioState, order: PhantomOrder) -> TradeResult:
        holdings = [
            PhantomHolding(h.symbol, h.company_name, h.shares, h.average_cost)
            for h in state.holdings
        ]
        index = _find(holdings, order.symbol)

        if index is None:
            return TradeResult.failure(
                NoSuchPositionError(detail=order.symbol, context={"symbol": order.symbol}),
                order,
            )

        existing = holdings[index]
        if order.shares > existing.shares:
            return TradeResult.failure(
                InsufficientSharesError(
                    detail=f"selling {order.shares} of {existing.shares} {order.symbol}",
                    context={"symbol": order.symbol},
                ),
                order,
            )

        remaining = existing.shares - order.shares
        if remaining <= SHARE_EPSILON:
            holdings.pop(index)
        else:
            holdings[index] = PhantomHolding(
                symbol=existing.symbol,
                company_name=existing.company_name,
                shares=remaining,
                average_cost=existing.average_cost,
            )

        new_state = PhantomPortfolioState(
            starting_balance=state.starting_balance,
            cash_balance=state.cash_balance + order.total,
            holdings=holdings,
            last_updated_at=self.clock(),
            source=PhantomSource(),
        )
        return TradeResult.success(new_state, order)


def _find(holdings, symbol: str) -> Optional[int]:
    for i, holding in enumerate(holdings):
        if holding.symbol == symbol:
            return i
    return None


def execute_trade(
    state: PhantomPortfolioState,
    order: OrderInput,
    clock: Optional[Callable[[], datetime]] = None,
) -> TradeResult:
    """Functional shortcut for ``PhantomTradeExecutor(clock).execute(...)``."""
    return PhantomTradeExecutor(clock).execute(state, order)
