"""
Teenvest Validation Module

Input validation for phantom portfolio orders.
"""

from .models import OrderSide, PhantomOrder, parse_order

__all__ = [
    "OrderSide",
    "PhantomOrder",
    "parse_order",
]
