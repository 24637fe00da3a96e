"""
Error taxonomy for the paper-trading core.

Every error here is recoverable: it blocks one requested operation (or falls
back to a default) and leaves the ledger unchanged.
"""

from __future__ import annotations


class TradeSimError(Exception):
    """Base class for all paper-trading errors."""


# --- Order validation ---


class OrderRejected(TradeSimError):
    """An order failed pre-execution checks. No state was changed."""


class InvalidQuantity(OrderRejected):
    def __init__(self, quantity: float) -> None:
        super().__init__(f"Invalid quantity {quantity!r}: must be greater than 0")
        self.quantity = quantity


class InsufficientFunds(OrderRejected):
    def __init__(self, required: float, available: float) -> None:
        super().__init__(f"Insufficient funds: order costs {required:,.2f}, balance is {available:,.2f}")
        self.required = required
        self.available = available


class ShortSellingDisabled(OrderRejected):
    """SELL not covered by open long quantity while short-opens are disabled."""

    def __init__(self, symbol: str, requested: float, held: float) -> None:
        super().__init__(f"Cannot sell {requested} {symbol}: only {held} held long")
        self.symbol = symbol
        self.requested = requested
        self.held = held


# --- Ledger ---


class PositionError(TradeSimError):
    """A close request that cannot be applied."""


class PositionNotFound(PositionError):
    def __init__(self, position_id: str) -> None:
        super().__init__(f"No position with id {position_id!r}")
        self.position_id = position_id


class PositionAlreadyClosed(PositionError):
    def __init__(self, position_id: str) -> None:
        super().__init__(f"Position {position_id!r} is already closed")
        self.position_id = position_id


# --- Persistence ---


class PersistenceError(TradeSimError):
    """Ledger state could not be written or read."""


class PersistenceWriteFailed(PersistenceError):
    pass


class PersistenceReadCorrupt(PersistenceError):
    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Stored record {key!r} is unreadable: {reason}")
        self.key = key
        self.reason = reason


# --- Prices / config ---


class UnknownSymbol(TradeSimError, KeyError):
    def __init__(self, symbol: str) -> None:
        super().__init__(symbol)
        self.symbol = symbol

    def __str__(self) -> str:
        return f"Unknown symbol {self.symbol!r}"


class ConfigError(TradeSimError, ValueError):
    """Invalid simulator configuration (bad env value, bad option)."""
