"""
Order validation: gate every order before it reaches the ledger.

Pure checks on quantity, funds and sell coverage. Accepting returns the
order unchanged; rejecting raises an OrderRejected subclass.
"""

from __future__ import annotations

import math
import numbers
from enum import Enum

from tradesim_core.errors import InsufficientFunds, InvalidQuantity, ShortSellingDisabled
from tradesim_core.order import Order, Side

# Float slack when comparing a sell against the summed long quantity.
QTY_TOLERANCE = 1e-9


class SellPolicy(Enum):
    """
    What a SELL order means.

    OPEN_SHORT: every sell opens an independent short position and credits
    cash immediately, whatever is held.
    CLOSE_LONG: a sell must be covered by open long quantity in the same
    symbol and closes those longs oldest-first.
    """

    OPEN_SHORT = "open_short"
    CLOSE_LONG = "close_long"

    @classmethod
    def parse(cls, value: "SellPolicy | str") -> "SellPolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown sell policy {value!r}; expected 'open_short' or 'close_long'") from None


def validate_order(
    side: Side | str,
    quantity: float,
    unit_price: float,
    cash_balance: float,
) -> None:
    """
    Check quantity and funds. Raises InvalidQuantity or InsufficientFunds.

    Sell orders are not funds-checked: they credit cash.
    """
    side = Side.parse(side)
    if not isinstance(quantity, numbers.Real) or isinstance(quantity, bool):
        raise InvalidQuantity(quantity)
    if not math.isfinite(quantity) or quantity <= 0:
        raise InvalidQuantity(quantity)
    if side is Side.BUY:
        cost = quantity * unit_price
        if cost > cash_balance:
            raise InsufficientFunds(required=cost, available=cash_balance)


class OrderValidator:
    """Order gate with an explicit sell policy."""

    def __init__(self, sell_policy: SellPolicy | str = SellPolicy.OPEN_SHORT) -> None:
        self.sell_policy = SellPolicy.parse(sell_policy)

    def check(
        self,
        order: Order,
        unit_price: float,
        cash_balance: float,
        open_long_quantity: float = 0.0,
    ) -> Order:
        """
        Return order unchanged when accepted.

        open_long_quantity is the quantity currently held long in
        order.symbol; only consulted for sells under CLOSE_LONG.
        """
        validate_order(order.side, order.quantity, unit_price, cash_balance)
        if (
            order.side is Side.SELL
            and self.sell_policy is SellPolicy.CLOSE_LONG
            and order.quantity > open_long_quantity + QTY_TOLERANCE
        ):
            raise ShortSellingDisabled(order.symbol, order.quantity, open_long_quantity)
        return order
