"""
Teenvest Engine

Facade that wires the trade ledger, plan store, account valuation,
instrument catalog and phantom portfolio store to the scoring and
replication components.
"""

import logging
from typing import Any, Dict, Optional

from ..config.logging import LogContext, business_logger, configure_logging
from ..config.settings import TeenvestSettings, get_settings
from ..discipline.plans import InMemoryPlanStore, InMemoryTradeLedger
from ..discipline.scorer import DisciplineScorer, is_at_risk
from ..phantom.catalog import StaticInstrumentCatalog
from ..phantom.executor import OrderInput, TradeResult
from ..phantom.planner import PortfolioReplicationPlanner, format_ratio
from ..phantom.portfolio import PhantomPortfolioState, value_portfolio
from ..phantom.store import PhantomPortfolioStore

logger = logging.getLogger(__name__)


def setup_logging(settings: Optional[TeenvestSettings] = None) -> None:
    """Configure root logging from settings (LOG_LEVEL, LOG_JSON, ENVIRONMENT)."""
    settings = settings or get_settings()
    configure_logging(
        level=settings.LOG_LEVEL,
        json_format=settings.LOG_JSON,
        environment=settings.ENVIRONMENT,
    )


class TeenvestEngine:
    """
    Main entry point for discipline scoring and phantom portfolios.

    Every collaborator is optional; missing ones default to the in-memory
    reference implementations. Thresholds come from ``settings`` (or the
    cached environment settings) and are handed to the components as
    explicit configuration.
    """

    def __init__(
        self,
        ledger=None,
        plan_store=None,
        valuation=None,
        catalog=None,
        portfolio_store: Optional[PhantomPortfolioStore] = None,
        settings: Optional[TeenvestSettings] = None,
    ):
        self.settings = settings or get_settings()
        self.ledger = ledger if ledger is not None else InMemoryTradeLedger()
        self.plan_store = plan_store if plan_store is not None else InMemoryPlanStore()
        self.valuation = valuation
        self.catalog = catalog if catalog is not None else StaticInstrumentCatalog()
        self.portfolio_store = portfolio_store or PhantomPortfolioStore()

        self.scorer = DisciplineScorer(self.settings.discipline_config())
        self.planner = PortfolioReplicationPlanner(
            catalog=self.catalog,
            config=self.settings.replication_config(),
        )

        logger.info("Teenvest engine initialized")

    def _account_value(self, user_id: str) -> float:
        if self.valuation is None:
            return 0.0
        return self.valuation.current_value(user_id)

    def discipline_report(
        self,
        user_id: str,
        starting_balance: Optional[float] = None,
        admin_override: bool = False,
    ) -> Dict[str, Any]:
        """
        Score a user's completed trades.

        Args:
            user_id: User whose ledger is scored
            starting_balance: Account starting balance (defaults to settings)
            admin_override: Never report the user as at risk

        Returns:
            Score, breakdown, tone, message and the at-risk flag
        """
        if starting_balance is None:
            starting_balance = self.settings.DEFAULT_STARTING_BALANCE

        with LogContext(user_id):
            result = self.scorer.score(
                self.ledger.list_completed_trades(user_id),
                plans=self.plan_store.load_plans(user_id),
                starting_balance=starting_balance,
                current_account_value=self._account_value(user_id),
            )
            business_logger.log_discipline_scored(
                user_id,
                result.score,
                result.breakdown.trade_sample,
                skipped_records=result.breakdown.skipped_records,
            )

        report = result.to_dict()
        report["userId"] = user_id
        report["atRisk"] = is_at_risk(
            result.score,
            admin_override=admin_override,
            threshold=self.scorer.config.at_risk_threshold,
        )
        return report

    def sync_phantom(
        self,
        user_id: str,
        target_id: str,
        target_value: float,
        holdings_count: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Replace the user's phantom portfolio with a scaled copy of a target.

        The user's capital is the account valuation when one is wired in,
        otherwise the default starting balance.
        """
        user_value = (
            self._account_value(user_id)
            if self.valuation is not None
            else self.settings.DEFAULT_STARTING_BALANCE
        )

        with LogContext(user_id):
            plan = self.planner.plan(
                target_id=target_id,
                target_value=target_value,
                user_value=user_value,
                holdings_count=holdings_count,
            )
            state = self.portfolio_store.apply_plan(user_id, plan)
            business_logger.log_phantom_synced(user_id, target_id, plan.ratio, len(plan.holdings))

        return {
            "plan": plan.to_dict(),
            "ratioLabel": format_ratio(plan.user_value, plan.target_value),
            "portfolio": state.to_dict(),
        }

    def phantom_trade(self, user_id: str, order: OrderInput) -> TradeResult:
        """Buy or sell in the user's phantom portfolio."""
        with LogContext(user_id):
            result = self.portfolio_store.execute_trade(
                user_id,
                order,
                starting_balance=self.settings.DEFAULT_STARTING_BALANCE,
            )
            if result.order is not None:
                business_logger.log_phantom_trade(
                    user_id,
                    result.order.side.value,
                    result.order.symbol,
                    result.order.shares,
                    result.order.price,
                    error=result.error_message,
                )
            elif result.error is not None:
                logger.info(f"Phantom order for {user_id} rejected: {result.error.code}")
        return result

    def reset_phantom(self, user_id: str, balance: Optional[float] = None) -> PhantomPortfolioState:
        """Wipe the phantom portfolio back to cash."""
        if balance is None and self.portfolio_store.get(user_id) is None:
            balance = self.settings.DEFAULT_STARTING_BALANCE

        with LogContext(user_id):
            state = self.portfolio_store.reset(user_id, balance)
            business_logger.log_phantom_reset(user_id, state.starting_balance)
        return state

    def phantom_snapshot(self, user_id: str) -> PhantomPortfolioState:
        return self.portfolio_store.get_or_create(
            user_id, self.settings.DEFAULT_STARTING_BALANCE
        )

    def phantom_valuation(
        self,
        user_id: str,
        prices: Optional[Dict[str, float]] = None,
    ) -> Dict[str, Any]:
        """
        Mark the phantom portfolio to market.

        Args:
            user_id: Portfolio owner
            prices: Live quotes; the catalog's reference prices fill gaps
        """
        state = self.phantom_snapshot(user_id)
        return value_portfolio(state, catalog=self.catalog, prices=prices).to_dict()

    def health_check(self) -> Dict[str, Any]:
        """
        Check health of engine components.

        Returns:
            Dictionary with health status of each component
        """
        return {
            "core": True,
            "catalog": len(self.catalog.universe()) > 0,
            "portfolio_store": self.portfolio_store is not None,
            "status": "operational",
        }
