"""
Events published by a trading session.

Events are immutable: a timestamp plus a payload. PriceTick and
ExecutedTrade are the payloads a session emits; subscribers react to them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tradesim_core.order import Side


@dataclass(frozen=True)
class Event:
    """Envelope for everything dispatched through the EventLoop."""

    timestamp: datetime
    payload: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.timestamp, datetime):
            object.__setattr__(self, "timestamp", datetime.fromisoformat(str(self.timestamp)))


@dataclass(frozen=True)
class PriceTick:
    """New prices after one feed step."""

    prices: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ExecutedTrade:
    """
    A fill applied to the ledger: an order opening a position ('open') or a
    position being closed ('close'). realized_profit is set on closes only.
    """

    position_id: str
    symbol: str
    side: Side
    quantity: float
    price: float
    timestamp: datetime
    action: str = "open"
    realized_profit: float | None = None
