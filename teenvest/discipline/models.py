"""
Trade and Trade Plan Models

Immutable records read by the discipline scorer. Ledger rows arrive in
several shapes (snake_case database rows, camelCase client payloads), so
parsing is lenient and returns None for records that cannot be used.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)


class TradeSide(Enum):
    """Direction of a trade."""

    BUY = "buy"
    SELL = "sell"
    SHORT = "short"
    COVER = "cover"

    @property
    def is_entry(self) -> bool:
        return self in (TradeSide.BUY, TradeSide.SHORT)

    @property
    def is_exit(self) -> bool:
        return self in (TradeSide.SELL, TradeSide.COVER)


class TradeStatus(Enum):
    """Lifecycle status of a trade."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def _first(record: Mapping[str, Any], *keys: str) -> Any:
    """Return the first non-None value among keys."""
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def to_epoch_ms(value: Any) -> Optional[int]:
    """
    Convert a timestamp to epoch milliseconds.

    Accepts datetimes (naive values are treated as UTC), ISO-8601 strings and
    epoch numbers (values below 1e11 are read as seconds).
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(round(value.timestamp() * 1000))

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        if abs(value) < 1e11:
            return int(round(value * 1000))
        return int(value)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_epoch_ms(datetime.fromisoformat(text))
        except ValueError:
            return None

    return None


def _parse_enum(enum_cls, value: Any):
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return None
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        return None


@dataclass(frozen=True)
class Trade:
    """A filled (or pending/cancelled) order from the trade ledger."""

    id: str
    symbol: str
    side: TradeSide
    shares: float
    executed_price: float
    timestamp: int  # epoch milliseconds
    total_amount: float = 0.0
    entry_price: Optional[float] = None
    status: TradeStatus = TradeStatus.COMPLETED

    @property
    def is_completed(self) -> bool:
        return self.status == TradeStatus.COMPLETED

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Optional["Trade"]:
        """
        Parse a raw ledger record.

        Returns None when the record is missing an id, symbol, side,
        executed price or timestamp, or when numbers are non-finite.
        """
        if not isinstance(record, Mapping):
            return None

        trade_id = _first(record, "id", "trade_id", "tradeId")
        symbol = record.get("symbol")
        side = _parse_enum(TradeSide, _first(record, "side", "trade_type", "tradeType"))
        if trade_id is None or not isinstance(symbol, str) or not symbol.strip() or side is None:
            return None

        price = _to_float(
            _first(record, "executed_price", "executedPrice", "price")
        )
        if price is None or price <= 0:
            return None

        timestamp = to_epoch_ms(
            _first(record, "timestamp", "filled_at", "filledAt", "created_at", "createdAt")
        )
        if timestamp is None:
            return None

        shares = _to_float(record.get("shares"))
        if shares is None or shares <= 0:
            return None

        status = _parse_enum(TradeStatus, record.get("status", "completed"))
        if status is None:
            return None

        total_amount = _to_float(_first(record, "total_amount", "totalAmount"))
        if total_amount is None:
            total_amount = shares * price

        entry_price = _to_float(_first(record, "entry_price", "entryPrice"))

        return cls(
            id=str(trade_id),
            symbol=symbol.strip().upper(),
            side=side,
            shares=shares,
            executed_price=price,
            timestamp=timestamp,
            total_amount=total_amount,
            entry_price=entry_price,
            status=status,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "side": self.side.value,
            "shares": self.shares,
            "executedPrice": self.executed_price,
            "entryPrice": self.entry_price,
            "totalAmount": self.total_amount,
            "timestamp": self.timestamp,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class TradePlan:
    """Take-profit / stop-loss targets committed before an entry trade."""

    trade_id: str
    take_profit: Optional[float] = None
    stop_loss: Optional[float] = None
    symbol: Optional[str] = None
    side: Optional[TradeSide] = None
    created_at: Optional[datetime] = None

    @property
    def has_targets(self) -> bool:
        """True when at least one positive exit target was set."""
        return bool(
            (self.take_profit is not None and self.take_profit > 0)
            or (self.stop_loss is not None and self.stop_loss > 0)
        )

    def exit_adheres(self, executed_price: float, tolerance_pct: float) -> bool:
        """
        Whether an exit fill honored this plan.

        A fill counts when it reached the take-profit (allowing fills up to
        ``tolerance_pct`` below it) or the stop-loss (allowing fills up to
        ``tolerance_pct`` above it).
        """
        if not math.isfinite(executed_price) or executed_price <= 0:
            return False

        take_profit_hit = (
            self.take_profit is not None
            and self.take_profit > 0
            and executed_price >= self.take_profit * (1 - tolerance_pct)
        )
        stop_loss_hit = (
            self.stop_loss is not None
            and self.stop_loss > 0
            and executed_price <= self.stop_loss * (1 + tolerance_pct)
        )
        return take_profit_hit or stop_loss_hit

    @classmethod
    def from_record(cls, trade_id: str, record: Mapping[str, Any]) -> "TradePlan":
        """Build a plan from a stored payload keyed by trade id."""
        created = record.get("created_at", record.get("createdAt"))
        if isinstance(created, str):
            try:
                created = datetime.fromisoformat(created.replace("Z", "+00:00"))
            except ValueError:
                created = None
        elif not isinstance(created, datetime):
            created = None

        return cls(
            trade_id=str(trade_id),
            take_profit=_to_float(_first(record, "take_profit", "takeProfit")),
            stop_loss=_to_float(_first(record, "stop_loss", "stopLoss")),
            symbol=record.get("symbol"),
            side=_parse_enum(TradeSide, _first(record, "side", "trade_type", "tradeType")),
            created_at=created,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tradeId": self.trade_id,
            "takeProfit": self.take_profit,
            "stopLoss": self.stop_loss,
            "symbol": self.symbol,
            "tradeType": self.side.value if self.side else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
