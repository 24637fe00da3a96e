"""
Position: one executed simulated order and its open -> closed lifecycle.

Immutable record. The ledger replaces an open Position with its closed
successor; nothing else changes a record once it exists.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from tradesim_core.order import Side


class PositionStatus(Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class Position:
    """
    Trade record. Symbol, name and entry price are copied at execution time,
    so later quote changes never touch it.

    realized_profit is None while OPEN and always set once CLOSED.
    """

    id: str
    symbol: str
    name: str
    side: Side
    entry_price: float
    quantity: float
    opened_at: datetime
    status: PositionStatus = PositionStatus.OPEN
    realized_profit: float | None = None
    closed_at: datetime | None = None
    exit_price: float | None = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(f"Position quantity must be positive, got {self.quantity!r}")
        if self.entry_price <= 0:
            raise ValueError(f"Position entry price must be positive, got {self.entry_price!r}")
        if self.status is PositionStatus.OPEN and self.realized_profit is not None:
            raise ValueError("Open position cannot carry a realized profit")
        if self.status is PositionStatus.CLOSED and self.realized_profit is None:
            raise ValueError("Closed position must carry a realized profit")

    @property
    def is_open(self) -> bool:
        return self.status is PositionStatus.OPEN

    @property
    def cost_basis(self) -> float:
        return self.quantity * self.entry_price

    def market_value(self, price: float) -> float:
        """Signed value at price: long positions are assets, shorts are liabilities."""
        value = self.quantity * price
        return value if self.side is Side.BUY else -value

    def profit_at(self, price: float) -> float:
        """P&L if the position were closed at price."""
        current_value = self.quantity * price
        if self.side is Side.BUY:
            return current_value - self.cost_basis
        return self.cost_basis - current_value

    def unrealized_profit(self, price: float) -> float:
        if not self.is_open:
            raise ValueError(f"Position {self.id!r} is closed; use realized_profit")
        return self.profit_at(price)

    def closed(self, price: float, at: datetime) -> "Position":
        """Closed successor of this record, booking P&L at price."""
        return replace(
            self,
            status=PositionStatus.CLOSED,
            realized_profit=self.profit_at(price),
            closed_at=at,
            exit_price=price,
        )
