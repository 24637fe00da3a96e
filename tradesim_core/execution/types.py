"""
Execution-layer types: order status and the rejected-order log.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from tradesim_core.order import Order


class OrderStatusKind(Enum):
    FILLED = "filled"
    REJECTED = "rejected"


@dataclass(frozen=True)
class OrderStatus:
    """
    Result of a session request. position_ids lists the positions opened or
    closed by a fill. warning is set when the fill was applied but the
    ledger could not be saved.
    """

    status: OrderStatusKind
    position_ids: tuple[str, ...] = ()
    fill_price: float | None = None
    filled_quantity: float = 0.0
    realized_profit: float | None = None
    message: str | None = None
    warning: str | None = None
    timestamp: datetime | None = None

    @property
    def ok(self) -> bool:
        return self.status is OrderStatusKind.FILLED


@dataclass(frozen=True)
class RejectedOrderLog:
    """One rejected request: an order, or a close of position_id."""

    reason: str
    timestamp: datetime
    order: Order | None = None
    position_id: str | None = None
