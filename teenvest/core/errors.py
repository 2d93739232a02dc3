"""
Teenvest Error Handling Module

Structured error codes, user-facing messages and the exception hierarchy
shared by the discipline scorer and the phantom portfolio engine.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# =============================================================================
# Error Code Taxonomy
# =============================================================================


class ErrorCategory(Enum):
    """Top-level error categories."""

    VALIDATION = "VALIDATION"
    BUSINESS = "BUSINESS"
    DATA = "DATA"


class ErrorSeverity(Enum):
    """Error severity levels for logging."""

    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()
    CRITICAL = auto()


@dataclass(frozen=True)
class ErrorCode:
    """Structured error code with metadata."""

    code: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    user_message: str
    recovery_hint: str = ""

    def __str__(self) -> str:
        return f"{self.category.value}_{self.code}"


class ErrorCodes:
    """Central registry of all Teenvest error codes."""

    # Validation Errors (1xxx)
    VALIDATION_INVALID_ORDER = ErrorCode(
        code="1001",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.INFO,
        message="Order failed validation",
        user_message="Enter a valid share amount.",
        recovery_hint="Shares and price must be positive numbers.",
    )

    VALIDATION_INVALID_PRICE = ErrorCode(
        code="1002",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.INFO,
        message="Order price is not a positive number",
        user_message="Invalid price.",
        recovery_hint="Refresh the quote and try again.",
    )

    VALIDATION_MISSING_SYMBOL = ErrorCode(
        code="1003",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.INFO,
        message="Order symbol is missing",
        user_message="Pick a stock to trade.",
    )

    # Business Rule Errors (2xxx)
    BUSINESS_INSUFFICIENT_CASH = ErrorCode(
        code="2001",
        category=ErrorCategory.BUSINESS,
        severity=ErrorSeverity.INFO,
        message="Order cost exceeds phantom cash balance",
        user_message="Insufficient phantom cash.",
        recovery_hint="Reduce the share amount or sell another holding first.",
    )

    BUSINESS_INSUFFICIENT_SHARES = ErrorCode(
        code="2002",
        category=ErrorCategory.BUSINESS,
        severity=ErrorSeverity.INFO,
        message="Sell quantity exceeds held shares",
        user_message="Not enough phantom shares to sell.",
    )

    BUSINESS_NO_SUCH_POSITION = ErrorCode(
        code="2003",
        category=ErrorCategory.BUSINESS,
        severity=ErrorSeverity.INFO,
        message="No phantom position for symbol",
        user_message="Not enough phantom shares to sell.",
    )

    # Data Errors (3xxx)
    DATA_DEGENERATE_TARGET = ErrorCode(
        code="3001",
        category=ErrorCategory.DATA,
        severity=ErrorSeverity.WARNING,
        message="Replication target has no positive value",
        user_message="This trader has nothing to copy yet.",
        recovery_hint="Pick a trader with a funded portfolio.",
    )

    DATA_MALFORMED_TRADE = ErrorCode(
        code="3002",
        category=ErrorCategory.DATA,
        severity=ErrorSeverity.WARNING,
        message="Trade record is malformed",
        user_message="Some trades could not be read.",
    )


# =============================================================================
# Base Exception Classes
# =============================================================================


class TeenvestError(Exception):
    """
    Base exception for all Teenvest errors.

    Carries an ErrorCode plus optional detail and context. Business-rule
    failures are returned inside result objects rather than raised, so most
    instances are created and handed back instead of thrown.
    """

    def __init__(
        self,
        error_code: ErrorCode,
        detail: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.error_code = error_code
        self.detail = detail
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.technical_message)

    @property
    def code(self) -> str:
        """Full error code string."""
        return str(self.error_code)

    @property
    def category(self) -> ErrorCategory:
        return self.error_code.category

    @property
    def severity(self) -> ErrorSeverity:
        return self.error_code.severity

    @property
    def user_message(self) -> str:
        """User-friendly error message."""
        return self.error_code.user_message

    @property
    def technical_message(self) -> str:
        """Technical error message for logging."""
        msg = f"[{self.code}] {self.error_code.message}"
        if self.detail:
            msg = f"{msg}: {self.detail}"
        return msg

    @property
    def recovery_hint(self) -> str:
        return self.error_code.recovery_hint

    def to_dict(self, include_debug: bool = False) -> Dict[str, Any]:
        """
        Convert error to dictionary.

        Args:
            include_debug: Include technical message and context
        """
        result = {
            "code": self.code,
            "category": self.category.value,
            "message": self.user_message,
            "recovery_hint": self.recovery_hint,
            "timestamp": self.timestamp.isoformat(),
        }

        if include_debug:
            result["debug"] = {
                "technical_message": self.technical_message,
                "context": self.context,
            }

        return result

    def log(self) -> None:
        """Log the error with appropriate severity."""
        log_method = getattr(logger, self.severity.name.lower(), logger.error)
        log_method(
            self.technical_message,
            extra={"ctx_error_code": self.code, "ctx_context": self.context},
        )


class ValidationError(TeenvestError):
    """Order or input rejected before any mutation."""

    def __init__(
        self,
        error_code: ErrorCode = ErrorCodes.VALIDATION_INVALID_ORDER,
        **kwargs,
    ):
        super().__init__(error_code, **kwargs)


class InsufficientCashError(TeenvestError):
    """Buy cost exceeds the phantom cash balance."""

    def __init__(
        self,
        error_code: ErrorCode = ErrorCodes.BUSINESS_INSUFFICIENT_CASH,
        **kwargs,
    ):
        super().__init__(error_code, **kwargs)


class InsufficientSharesError(TeenvestError):
    """Sell quantity exceeds the held shares."""

    def __init__(
        self,
        error_code: ErrorCode = ErrorCodes.BUSINESS_INSUFFICIENT_SHARES,
        **kwargs,
    ):
        super().__init__(error_code, **kwargs)


class NoSuchPositionError(TeenvestError):
    """Sell against a symbol that is not held."""

    def __init__(
        self,
        error_code: ErrorCode = ErrorCodes.BUSINESS_NO_SUCH_POSITION,
        **kwargs,
    ):
        super().__init__(error_code, **kwargs)


class DegenerateInputError(TeenvestError):
    """Replication target with zero or negative value."""

    def __init__(
        self,
        error_code: ErrorCode = ErrorCodes.DATA_DEGENERATE_TARGET,
        **kwargs,
    ):
        super().__init__(error_code, **kwargs)


class MalformedTradeError(TeenvestError):
    """Trade record that cannot be interpreted."""

    def __init__(
        self,
        error_code: ErrorCode = ErrorCodes.DATA_MALFORMED_TRADE,
        **kwargs,
    ):
        super().__init__(error_code, **kwargs)


__all__ = [
    "ErrorCategory",
    "ErrorSeverity",
    "ErrorCode",
    "ErrorCodes",
    "TeenvestError",
    "ValidationError",
    "InsufficientCashError",
    "InsufficientSharesError",
    "NoSuchPositionError",
    "DegenerateInputError",
    "MalformedTradeError",
]
