"""
tradesim-core: paper-trading ledger for a trading-education simulator.

Synthetic price feed, order validation, a cash/position ledger with
realized P&L, and versioned persistence. No UI, no network, no broker.
"""

__version__ = "0.1.0"

from tradesim_core.order import Order, Side
from tradesim_core.position import Position, PositionStatus
from tradesim_core.validation import OrderValidator, SellPolicy, validate_order
from tradesim_core.ledger import DEFAULT_INITIAL_CAPITAL, Ledger, LedgerState, OrderFill
from tradesim_core.pricefeed import AssetClass, PriceFeed, generate_price_series
from tradesim_core.events import Event, ExecutedTrade, PriceTick
from tradesim_core.event_loop import EventLoop
from tradesim_core.config import SimulatorConfig

__all__ = [
    "Order",
    "Side",
    "Position",
    "PositionStatus",
    "OrderValidator",
    "SellPolicy",
    "validate_order",
    "DEFAULT_INITIAL_CAPITAL",
    "Ledger",
    "LedgerState",
    "OrderFill",
    "AssetClass",
    "PriceFeed",
    "generate_price_series",
    "Event",
    "ExecutedTrade",
    "PriceTick",
    "EventLoop",
    "SimulatorConfig",
]
