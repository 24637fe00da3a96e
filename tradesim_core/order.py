"""
Order: a simulated trade request from the user.

Immutable. Carries no price; the fill price comes from the price source
at execution time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Side(Enum):
    BUY = "buy"
    SELL = "sell"

    @classmethod
    def parse(cls, value: "Side | str") -> "Side":
        """Accept a Side or its string value ('buy' / 'SELL')."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown side {value!r}; expected 'buy' or 'sell'") from None


@dataclass(frozen=True)
class Order:
    """What to trade and how much. Name defaults to the symbol."""

    symbol: str
    side: Side
    quantity: float
    name: str = field(default="")
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.side, Side):
            object.__setattr__(self, "side", Side.parse(self.side))
        if not self.name:
            object.__setattr__(self, "name", self.symbol)

    @property
    def is_buy(self) -> bool:
        return self.side is Side.BUY
