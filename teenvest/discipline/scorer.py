"""
Discipline Scorer Module

Reduces a user's trade history and pre-trade exit plans to a 0-100
discipline score. Three behaviors are penalized:

- exits that ignore the take-profit / stop-loss committed at entry
- revenge trades: a new trade within a minute of a losing exit
- over-leveraged entries sized beyond half of the account
"""

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..core.errors import MalformedTradeError
from ..config.logging import log_performance
from ..config.settings import DisciplineConfig
from .models import Trade, TradePlan, TradeSide, to_epoch_ms

logger = logging.getLogger(__name__)

TradeInput = Union[Trade, Mapping[str, Any]]
PlanLookup = Callable[[str], Optional[TradePlan]]


class ScoreTone(Enum):
    """Display band for a discipline score."""

    STRONG = "strong"
    STEADY = "steady"
    AT_RISK = "at_risk"


SCORE_MESSAGES = {
    ScoreTone.STRONG: "Disciplined and consistent. Keep it up.",
    ScoreTone.STEADY: "Solid foundation. Clean up a few habits to level up.",
    ScoreTone.AT_RISK: "Discipline is low. Focus on exits, sizing, and reset your cadence.",
}


@dataclass
class DisciplineBreakdown:
    """Counters and penalties behind a discipline score."""

    planned_exits: int = 0
    adhered_exits: int = 0
    plan_adherence_rate: float = 0.0
    revenge_trades: int = 0
    over_leverage_trades: int = 0
    plan_miss_penalty: int = 0
    revenge_penalty: int = 0
    leverage_penalty: int = 0
    starting_balance: float = 0.0
    account_value: float = 0.0
    trade_sample: int = 0
    skipped_records: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "plannedExits": self.planned_exits,
            "adheredExits": self.adhered_exits,
            "planAdherenceRate": round(self.plan_adherence_rate, 4),
            "revengeTrades": self.revenge_trades,
            "overLeverageTrades": self.over_leverage_trades,
            "planMissPenalty": self.plan_miss_penalty,
            "revengePenalty": self.revenge_penalty,
            "leveragePenalty": self.leverage_penalty,
            "startingBalance": self.starting_balance,
            "accountValue": self.account_value,
            "tradeSample": self.trade_sample,
            "skippedRecords": self.skipped_records,
        }


@dataclass
class DisciplineResult:
    """A discipline score with its breakdown."""

    score: int
    breakdown: DisciplineBreakdown

    @property
    def tone(self) -> ScoreTone:
        return score_tone(self.score)

    @property
    def message(self) -> str:
        return SCORE_MESSAGES[self.tone]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "tone": self.tone.value,
            "message": self.message,
            "breakdown": self.breakdown.to_dict(),
        }


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up."""
    return int(math.floor(value + 0.5))


def score_tone(score: int) -> ScoreTone:
    if score >= 80:
        return ScoreTone.STRONG
    if score >= 50:
        return ScoreTone.STEADY
    return ScoreTone.AT_RISK


def is_at_risk(score: int, admin_override: bool = False, threshold: int = 50) -> bool:
    """
    Whether gated features should lock for this score.

    Args:
        score: Discipline score
        admin_override: Caller-supplied override, e.g. for admin accounts
        threshold: Scores strictly below this are at risk
    """
    return not admin_override and score < threshold


def _finite_or_zero(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _plan_lookup(plans: Any) -> PlanLookup:
    """Normalize a plan mapping or a ``trade_id -> plan`` callable into a lookup."""
    if plans is None:
        return lambda trade_id: None

    if isinstance(plans, Mapping):

        def lookup(trade_id: str) -> Optional[TradePlan]:
            plan = plans.get(trade_id)
            if plan is None or isinstance(plan, TradePlan):
                return plan
            if isinstance(plan, Mapping):
                return TradePlan.from_record(trade_id, plan)
            return None

        return lookup

    if callable(plans):
        return plans

    raise TypeError(f"Unsupported plans source: {type(plans).__name__}")


def _normalize_timestamp(trade: Trade) -> Optional[Trade]:
    """Coerce a non-integer timestamp to epoch milliseconds."""
    if isinstance(trade.timestamp, int) and not isinstance(trade.timestamp, bool):
        return trade
    timestamp = to_epoch_ms(trade.timestamp)
    if timestamp is None:
        return None
    return replace(trade, timestamp=timestamp)


def _usable(trade: Trade) -> bool:
    try:
        price = float(trade.executed_price)
    except (TypeError, ValueError):
        return False
    return bool(trade.symbol) and math.isfinite(price) and price > 0


def _completed_trades(trades: Iterable[TradeInput]) -> Tuple[List[Trade], int]:
    """Parse, validate and filter to completed trades; count rejects."""
    completed: List[Trade] = []
    skipped = 0

    for raw in trades or []:
        trade = raw if isinstance(raw, Trade) else Trade.from_record(raw)
        if trade is not None:
            trade = _normalize_timestamp(trade)
        if trade is None or not _usable(trade):
            skipped += 1
            MalformedTradeError(
                detail="skipped unreadable trade record",
                context={"record": repr(raw)},
            ).log()
            continue
        if trade.is_completed:
            completed.append(trade)

    return completed, skipped


class DisciplineScorer:
    """
    Score trading discipline from a trade log and exit plans.

    Pure and idempotent: the same inputs always give the same result.
    """

    def __init__(self, config: Optional[DisciplineConfig] = None):
        self.config = config or DisciplineConfig()

    @log_performance(threshold_ms=100)
    def score(
        self,
        trades: Iterable[TradeInput],
        plans: Any = None,
        starting_balance: float = 10_000.0,
        current_account_value: float = 0.0,
    ) -> DisciplineResult:
        """
        Compute the discipline score.

        Args:
            trades: Trades or raw ledger records in any order
            plans: Mapping of trade id to TradePlan, or a ``trade_id -> TradePlan`` callable
            starting_balance: Account starting balance
            current_account_value: Current cash plus holdings value

        Returns:
            DisciplineResult with score in [0, 100] and breakdown
        """
        cfg = self.config
        lookup = _plan_lookup(plans)

        completed, skipped = _completed_trades(trades)
        ordered = sorted(completed, key=lambda t: t.timestamp)

        starting_balance = _finite_or_zero(starting_balance)
        account_base = max(_finite_or_zero(current_account_value), starting_balance, 1.0)
        leverage_limit = account_base * cfg.leverage_threshold

        planned_exits = 0
        adhered_exits = 0
        revenge_trades = 0
        over_leverage_trades = 0
        last_entry_by_symbol: Dict[str, Trade] = {}

        for i in range(len(ordered)):
            trade = ordered[i]

            if trade.side.is_entry:
                last_entry_by_symbol[trade.symbol] = trade
                if trade.total_amount > leverage_limit:
                    over_leverage_trades += 1
                    logger.debug(
                        f"Over-leveraged entry {trade.id}: "
                        f"{trade.total_amount:.2f} > {leverage_limit:.2f}"
                    )
                continue

            entry = last_entry_by_symbol.get(trade.symbol)
            plan = lookup(trade.id)
            if plan is None and entry is not None:
                plan = lookup(entry.id)

            if plan is not None and plan.has_targets:
                planned_exits += 1
                if plan.exit_adheres(trade.executed_price, cfg.plan_tolerance_pct):
                    adhered_exits += 1

            if self._is_loss_exit(trade) and i + 1 < len(ordered):
                delta = ordered[i + 1].timestamp - trade.timestamp
                if 0 < delta <= cfg.revenge_window_ms:
                    revenge_trades += 1
                    logger.debug(f"Revenge trade after {trade.id} ({delta}ms)")

        if planned_exits == 0:
            plan_adherence_rate = cfg.no_plan_adherence_rate
            plan_miss_penalty = cfg.no_plan_penalty
        else:
            plan_adherence_rate = adhered_exits / planned_exits
            plan_miss_penalty = round_half_up((1 - plan_adherence_rate) * cfg.plan_miss_weight)

        revenge_penalty = min(revenge_trades * cfg.revenge_penalty_per_trade, cfg.revenge_penalty_cap)
        leverage_penalty = min(
            over_leverage_trades * cfg.leverage_penalty_per_trade, cfg.leverage_penalty_cap
        )

        raw_score = 100 - plan_miss_penalty - revenge_penalty - leverage_penalty
        score = max(0, min(100, raw_score))

        breakdown = DisciplineBreakdown(
            planned_exits=planned_exits,
            adhered_exits=adhered_exits,
            plan_adherence_rate=plan_adherence_rate,
            revenge_trades=revenge_trades,
            over_leverage_trades=over_leverage_trades,
            plan_miss_penalty=plan_miss_penalty,
            revenge_penalty=revenge_penalty,
            leverage_penalty=leverage_penalty,
            starting_balance=starting_balance,
            account_value=account_base,
            trade_sample=len(ordered),
            skipped_records=skipped,
        )

        return DisciplineResult(score=score, breakdown=breakdown)

    @staticmethod
    def _is_loss_exit(trade: Trade) -> bool:
        """
        A sell below, or a cover above, the entry price recorded on the exit.

        Exits without a recorded entry price are never losses.
        """
        entry_price = trade.entry_price
        if entry_price is None:
            return False

        if trade.side == TradeSide.COVER:
            return trade.executed_price > entry_price
        return trade.executed_price < entry_price


def score_discipline(
    trades: Iterable[TradeInput],
    plans: Any = None,
    starting_balance: float = 10_000.0,
    current_account_value: float = 0.0,
    config: Optional[DisciplineConfig] = None,
) -> DisciplineResult:
    """Functional shortcut for ``DisciplineScorer(config).score(...)``."""
    return DisciplineScorer(config).score(
        trades,
        plans=plans,
        starting_balance=starting_balance,
        current_account_value=current_account_value,
    )
