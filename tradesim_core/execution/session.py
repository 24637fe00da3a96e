"""
Trading session: run user orders through the price feed and the ledger.

Flow: price from feed -> validator -> ledger -> publish ExecutedTrade.
Every rejection is logged and returned as a REJECTED OrderStatus; nothing
raised by the core escapes execute() or close().
"""

from __future__ import annotations

import logging
from datetime import datetime

from tradesim_core.config import SimulatorConfig
from tradesim_core.errors import TradeSimError
from tradesim_core.event_loop import EventLoop, Handler
from tradesim_core.events import Event, ExecutedTrade, PriceTick
from tradesim_core.execution.types import OrderStatus, OrderStatusKind, RejectedOrderLog
from tradesim_core.ledger import Ledger, OrderFill
from tradesim_core.order import Order, Side
from tradesim_core.persistence import InMemoryStore, JsonFileStore, LedgerPersistence
from tradesim_core.position import Position
from tradesim_core.pricefeed import PriceFeed
from tradesim_core.validation import OrderValidator

logger = logging.getLogger(__name__)


class TradingSession:
    """
    One user's simulator: a ledger priced by a feed.

    Subscribers receive Events carrying PriceTick (on tick) or ExecutedTrade
    (on each open or close) payloads.
    """

    def __init__(
        self,
        ledger: Ledger,
        feed: PriceFeed,
        *,
        event_loop: EventLoop | None = None,
    ) -> None:
        self.ledger = ledger
        self.feed = feed
        self.event_loop = event_loop or EventLoop()
        self._rejected_log: list[RejectedOrderLog] = []
        self._equity_curve: list[tuple[datetime, float]] = []

    @classmethod
    def from_config(cls, config: SimulatorConfig) -> "TradingSession":
        """Session with a restored ledger (file or in-memory store) and a seeded feed."""
        store = JsonFileStore(config.storage_dir) if config.storage_dir is not None else InMemoryStore()
        ledger = Ledger.restore(
            LedgerPersistence(store),
            config.initial_capital,
            validator=OrderValidator(config.sell_policy),
        )
        return cls(ledger, PriceFeed(seed=config.seed))

    # --- Subscriptions / read model ---

    def subscribe(self, handler: Handler) -> None:
        self.event_loop.subscribe(handler)

    @property
    def equity_curve(self) -> list[tuple[datetime, float]]:
        return list(self._equity_curve)

    def get_rejected_log(self) -> list[RejectedOrderLog]:
        return list(self._rejected_log)

    def account_value(self) -> float:
        return self.ledger.total_account_value(self.feed.price)

    def return_pct(self) -> float:
        return self.ledger.return_pct(self.feed.price)

    # --- Requests ---

    def execute(
        self,
        symbol: str,
        side: Side | str,
        quantity: float,
        *,
        timestamp: datetime | None = None,
    ) -> OrderStatus:
        """Buy or sell quantity of symbol at the feed's current price."""
        ts = timestamp or datetime.now()
        try:
            asset = self.feed.asset(symbol)
            order = Order(symbol=symbol, side=Side.parse(side), quantity=quantity, name=asset.name, timestamp=ts)
        except (TradeSimError, ValueError) as e:
            return self._reject(str(e), ts, position_id=None)
        price = self.feed.price(symbol)
        try:
            fill = self.ledger.execute(order, price)
        except TradeSimError as e:
            return self._reject(str(e), ts, order=order)

        logger.info(
            "%s %s %s at %.2f",
            "Bought" if order.side is Side.BUY else "Sold",
            order.quantity,
            symbol,
            price,
        )
        self._publish_fill(fill, ts)
        return self._filled(_fill_position_ids(fill), price, order.quantity, ts, realized=_realized(fill))

    def close(self, position_id: str, *, timestamp: datetime | None = None) -> OrderStatus:
        """Close a position at the current price of its own symbol."""
        ts = timestamp or datetime.now()
        try:
            position = self.ledger.get_position(position_id)
            price = self.feed.price(position.symbol)
            closed = self.ledger.close_position(position_id, price)
        except TradeSimError as e:
            return self._reject(str(e), ts, position_id=position_id)

        outcome = "profit" if closed.realized_profit >= 0 else "loss"
        logger.info("Closed %s position with %s of %.2f", closed.symbol, outcome, abs(closed.realized_profit))
        self._publish(ExecutedTrade(
            position_id=closed.id,
            symbol=closed.symbol,
            side=closed.side,
            quantity=closed.quantity,
            price=price,
            timestamp=ts,
            action="close",
            realized_profit=closed.realized_profit,
        ), ts)
        return self._filled((closed.id,), price, closed.quantity, ts, realized=closed.realized_profit)

    def tick(self, timestamp: datetime | None = None) -> dict[str, float]:
        """Advance the feed one step, publish the prices and record account value."""
        ts = timestamp or datetime.now()
        prices = self.feed.tick()
        self._equity_curve.append((ts, self.account_value()))
        self._publish(PriceTick(prices=dict(prices)), ts)
        return prices

    def mark(self, timestamp: datetime | None = None) -> float:
        """Record the current account value on the equity curve without moving prices."""
        value = self.account_value()
        self._equity_curve.append((timestamp or datetime.now(), value))
        return value

    # --- Internals ---

    def _publish(self, payload: object, ts: datetime) -> None:
        self.event_loop.dispatch(Event(timestamp=ts, payload=payload))

    def _publish_fill(self, fill: OrderFill, ts: datetime) -> None:
        if fill.opened is not None:
            p = fill.opened
            self._publish(ExecutedTrade(
                position_id=p.id,
                symbol=p.symbol,
                side=p.side,
                quantity=p.quantity,
                price=fill.price,
                timestamp=ts,
            ), ts)
        for p in fill.closed:
            self._publish(ExecutedTrade(
                position_id=p.id,
                symbol=p.symbol,
                side=p.side,
                quantity=p.quantity,
                price=fill.price,
                timestamp=ts,
                action="close",
                realized_profit=p.realized_profit,
            ), ts)

    def _filled(
        self,
        position_ids: tuple[str, ...],
        price: float,
        quantity: float,
        ts: datetime,
        *,
        realized: float | None,
    ) -> OrderStatus:
        error = self.ledger.persistence_error
        return OrderStatus(
            status=OrderStatusKind.FILLED,
            position_ids=position_ids,
            fill_price=price,
            filled_quantity=quantity,
            realized_profit=realized,
            warning=str(error) if error is not None else None,
            timestamp=ts,
        )

    def _reject(
        self,
        reason: str,
        ts: datetime,
        *,
        order: Order | None = None,
        position_id: str | None = None,
    ) -> OrderStatus:
        self._rejected_log.append(RejectedOrderLog(reason=reason, timestamp=ts, order=order, position_id=position_id))
        logger.warning("Request rejected: %s", reason)
        return OrderStatus(status=OrderStatusKind.REJECTED, message=reason, timestamp=ts)


def _fill_position_ids(fill: OrderFill) -> tuple[str, ...]:
    """Ids of the positions a fill opened or closed."""
    opened: tuple[Position, ...] = (fill.opened,) if fill.opened is not None else ()
    return tuple(p.id for p in opened + fill.closed)


def _realized(fill: OrderFill) -> float | None:
    if not fill.closed:
        return None
    return sum(p.realized_profit for p in fill.closed)
