"""
In-Memory Ledger and Plan Store

Reference implementations of the TradeLedger and PlanStore contracts, used
by tests and by integrators who keep state in process.
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from .models import Trade, TradePlan, TradeSide

logger = logging.getLogger(__name__)


class InMemoryTradeLedger:
    """Append-only per-user trade log."""

    def __init__(self):
        self._trades: Dict[str, List[Union[Trade, Mapping[str, Any]]]] = defaultdict(list)

    def record(self, user_id: str, trade: Union[Trade, Mapping[str, Any]]) -> None:
        """Append a trade (parsed or raw) to the user's log."""
        self._trades[user_id].append(trade)

    def list_trades(self, user_id: str) -> List[Union[Trade, Mapping[str, Any]]]:
        return list(self._trades.get(user_id, []))

    def list_completed_trades(self, user_id: str) -> List[Union[Trade, Mapping[str, Any]]]:
        """
        Trades whose status is completed.

        Raw records are passed through untouched so the scorer can count the
        malformed ones.
        """
        completed = []
        for trade in self._trades.get(user_id, []):
            if isinstance(trade, Trade):
                if trade.is_completed:
                    completed.append(trade)
            elif str(trade.get("status", "completed")).lower() == "completed":
                completed.append(trade)
        return completed


class InMemoryPlanStore:
    """
    Exit plans keyed by trade id, scoped per user.

    A plan is only ever visible to the user who saved it. ``load_plans``
    returns one user's plans as a mapping the scorer accepts directly.
    """

    def __init__(self):
        self._plans: Dict[str, Dict[str, TradePlan]] = defaultdict(dict)

    def save_plan(
        self,
        user_id: str,
        trade_id: str,
        take_profit: Optional[float] = None,
        stop_loss: Optional[float] = None,
        symbol: Optional[str] = None,
        side: Optional[TradeSide] = None,
    ) -> TradePlan:
        """Record the exit plan committed when a trade was placed."""
        plan = TradePlan(
            trade_id=trade_id,
            take_profit=take_profit,
            stop_loss=stop_loss,
            symbol=symbol.upper() if symbol else None,
            side=side,
            created_at=datetime.now(timezone.utc),
        )
        self._plans[user_id][trade_id] = plan
        logger.debug(f"Saved plan for trade {trade_id}")
        return plan

    def remove_plan(self, user_id: str, trade_id: str) -> bool:
        """Remove a plan; returns False when there was none."""
        plans = self._plans.get(user_id)
        if not plans or trade_id not in plans:
            return False
        del plans[trade_id]
        return True

    def load_plans(self, user_id: str) -> Dict[str, TradePlan]:
        """Snapshot of a user's plans keyed by trade id."""
        return dict(self._plans.get(user_id, {}))

    def get_plan(self, user_id: str, trade_id: str) -> Optional[TradePlan]:
        return self._plans.get(user_id, {}).get(trade_id)

    def import_plans(self, user_id: str, payload: Mapping[str, Mapping[str, Any]]) -> int:
        """
        Load plans from a serialized ``{trade_id: plan}`` mapping.

        Entries that are not mappings are skipped. Returns the number loaded.
        """
        loaded = 0
        for trade_id, record in payload.items():
            if not isinstance(record, Mapping):
                logger.warning(f"Skipping unreadable plan for trade {trade_id}")
                continue
            self._plans[user_id][str(trade_id)] = TradePlan.from_record(trade_id, record)
            loaded += 1
        return loaded
