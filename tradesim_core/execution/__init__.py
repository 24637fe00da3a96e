"""
Execution layer: trading session over the price feed and ledger.
"""

from tradesim_core.execution.types import OrderStatus, OrderStatusKind, RejectedOrderLog
from tradesim_core.execution.session import TradingSession

__all__ = [
    "OrderStatus",
    "OrderStatusKind",
    "RejectedOrderLog",
    "TradingSession",
]
