"""
Teenvest Logging Configuration

Structured logging with JSON output for production, a readable console format
for development, per-user correlation and business event helpers for the
scoring and phantom portfolio operations.
"""

import json
import logging
import os
import sys
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar

# Acting user for log correlation
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)


# =============================================================================
# Log Level Strategy
# =============================================================================
#
# DEBUG   - Per-trade scoring decisions, skipped records, basket picks
# INFO    - Scores computed, portfolios synced/reset, trades executed
# WARNING - Degenerate replication input, rejected orders
# ERROR   - Collaborator failures surfaced to the caller
# =============================================================================


class StructuredFormatter(logging.Formatter):
    """
    JSON structured log formatter.

    Fields prefixed with ``ctx_`` on the record are emitted without the prefix.
    """

    def __init__(self, service_name: str = "teenvest", environment: str = "development"):
        super().__init__()
        self.service_name = service_name
        self.environment = environment
        self.hostname = os.uname().nodename

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "environment": self.environment,
            "hostname": self.hostname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "user_id": user_id_var.get(),
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key.startswith("ctx_"):
                log_data[key[4:]] = value

        log_data = {k: v for k, v in log_data.items() if v is not None}

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        user_id = user_id_var.get()
        user_str = f"[{user_id[:8]}]" if user_id else ""

        formatted = (
            f"{timestamp} {color}{record.levelname:8}{self.RESET} "
            f"{user_str} {record.name} - {record.getMessage()}"
        )

        extras = []
        for key, value in record.__dict__.items():
            if key.startswith("ctx_"):
                extras.append(f"{key[4:]}={value}")
        if extras:
            formatted += f" | {', '.join(extras)}"

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    service_name: str = "teenvest",
    environment: str = "development",
    log_file: Optional[str] = None,
) -> None:
    """
    Configure logging for the Teenvest engine.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON structured logging
        service_name: Service name for structured logs
        environment: Environment name
        log_file: Optional file path for log output (always JSON)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    if json_format:
        formatter = StructuredFormatter(service_name, environment)
    else:
        formatter = ConsoleFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter(service_name, environment))
        root_logger.addHandler(file_handler)


# =============================================================================
# Context Management
# =============================================================================


def set_user_context(user_id: Optional[str]) -> None:
    """Attach the acting user to subsequent log records."""
    user_id_var.set(user_id)


def clear_user_context() -> None:
    user_id_var.set(None)


class LogContext:
    """Context manager binding the acting user for the duration of a block."""

    def __init__(self, user_id: Optional[str]):
        self.user_id = user_id
        self._token = None

    def __enter__(self):
        self._token = user_id_var.set(self.user_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            user_id_var.reset(self._token)


# =============================================================================
# Performance Logging Decorator
# =============================================================================

T = TypeVar("T")


def log_performance(threshold_ms: float = 250.0) -> Callable:
    """
    Decorator to log execution time of a synchronous function.

    Args:
        threshold_ms: Log a warning if execution exceeds this threshold

    Example:
        @log_performance(threshold_ms=50)
        def score(self, trades, plans, ...):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        logger = logging.getLogger(func.__module__)

        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            start_time = time.perf_counter()
            extra: Dict[str, Any] = {"ctx_function": func.__name__}

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                extra["ctx_duration_ms"] = round(duration_ms, 2)
                extra["ctx_error_type"] = type(e).__name__
                logger.error(
                    f"Operation failed: {func.__name__} - {e}",
                    extra=extra,
                    exc_info=True,
                )
                raise

            duration_ms = (time.perf_counter() - start_time) * 1000
            extra["ctx_duration_ms"] = round(duration_ms, 2)
            if duration_ms > threshold_ms:
                logger.warning(
                    f"Slow operation: {func.__name__} took {duration_ms:.2f}ms",
                    extra=extra,
                )
            else:
                logger.debug(
                    f"Operation completed: {func.__name__} in {duration_ms:.2f}ms",
                    extra=extra,
                )
            return result

        return wrapper

    return decorator


# =============================================================================
# Business Event Logging
# =============================================================================


class BusinessLogger:
    """Structured events for scoring and phantom portfolio operations."""

    def __init__(self, logger_name: str = "teenvest.business"):
        self.logger = logging.getLogger(logger_name)

    def log_discipline_scored(
        self,
        user_id: str,
        score: int,
        trade_sample: int,
        skipped_records: int = 0,
    ) -> None:
        extra = {
            "ctx_event": "discipline_scored",
            "ctx_user_id": user_id,
            "ctx_score": score,
            "ctx_trade_sample": trade_sample,
        }
        if skipped_records:
            extra["ctx_skipped_records"] = skipped_records

        self.logger.info(f"Discipline score {score} for {user_id}", extra=extra)

    def log_phantom_synced(
        self,
        user_id: str,
        target_id: str,
        ratio: float,
        holdings: int,
    ) -> None:
        extra = {
            "ctx_event": "phantom_synced",
            "ctx_user_id": user_id,
            "ctx_target_id": target_id,
            "ctx_ratio": round(ratio, 6),
            "ctx_holdings": holdings,
        }
        self.logger.info(
            f"Phantom portfolio for {user_id} synced to {target_id}",
            extra=extra,
        )

    def log_phantom_trade(
        self,
        user_id: str,
        side: str,
        symbol: str,
        shares: float,
        price: float,
        error: Optional[str] = None,
    ) -> None:
        extra = {
            "ctx_event": "phantom_trade",
            "ctx_user_id": user_id,
            "ctx_side": side,
            "ctx_symbol": symbol,
            "ctx_shares": shares,
            "ctx_price": price,
        }
        if error:
            extra["ctx_error"] = error
            self.logger.warning(
                f"Phantom {side} {symbol} rejected: {error}",
                extra=extra,
            )
            return

        self.logger.info(f"Phantom {side} {shares} {symbol} @ {price}", extra=extra)

    def log_phantom_reset(self, user_id: str, balance: float) -> None:
        extra = {
            "ctx_event": "phantom_reset",
            "ctx_user_id": user_id,
            "ctx_balance": balance,
        }
        self.logger.info(f"Phantom portfolio for {user_id} reset", extra=extra)


business_logger = BusinessLogger()
