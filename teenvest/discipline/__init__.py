"""
Discipline Scoring Module

Trade and exit-plan models, in-memory ledger and plan store, and the
0-100 discipline scorer.
"""

from .models import Trade, TradePlan, TradeSide, TradeStatus, to_epoch_ms
from .plans import InMemoryPlanStore, InMemoryTradeLedger
from .scorer import (
    DisciplineBreakdown,
    DisciplineResult,
    DisciplineScorer,
    ScoreTone,
    is_at_risk,
    round_half_up,
    score_discipline,
    score_tone,
)

__all__ = [
    # Models
    "Trade",
    "TradePlan",
    "TradeSide",
    "TradeStatus",
    "to_epoch_ms",
    # Storage
    "InMemoryTradeLedger",
    "InMemoryPlanStore",
    # Scoring
    "DisciplineScorer",
    "DisciplineResult",
    "DisciplineBreakdown",
    "ScoreTone",
    "score_discipline",
    "score_tone",
    "is_at_risk",
    "round_half_up",
]
