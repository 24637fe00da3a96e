"""
Ledger: cash balance and positions for one paper-trading account.

The ledger is the only mutator of account state. Every operation runs
under one re-entrant lock, so a check-then-act sequence (validate, then
open) cannot interleave with another writer. Account value is derived on
demand from current prices and never stored.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from typing import TYPE_CHECKING, Union

from tradesim_core.errors import PersistenceWriteFailed, PositionAlreadyClosed, PositionNotFound
from tradesim_core.order import Order, Side
from tradesim_core.position import Position
from tradesim_core.validation import OrderValidator, SellPolicy

if TYPE_CHECKING:
    from tradesim_core.persistence import LedgerPersistence

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_CAPITAL = 10_000.0
# Quantities closer than this are treated as equal when netting sells against longs.
QTY_EPSILON = 1e-9

PriceSource = Union[Mapping[str, float], Callable[[str], float]]


def _new_position_id() -> str:
    return f"pos-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class LedgerState:
    """Persistable snapshot: cash plus every position in execution order."""

    cash_balance: float = DEFAULT_INITIAL_CAPITAL
    positions: tuple[Position, ...] = ()


@dataclass(frozen=True)
class OrderFill:
    """Outcome of Ledger.execute: the position opened, or the longs closed by a sell."""

    order: Order
    price: float
    opened: Position | None = None
    closed: tuple[Position, ...] = ()


class Ledger:
    """
    Paper-trading account.

    Positions are kept in execution order internally; the positions
    property shows them most-recent-first.
    """

    def __init__(
        self,
        initial_capital: float = DEFAULT_INITIAL_CAPITAL,
        *,
        cash_balance: float | None = None,
        positions: tuple[Position, ...] | list[Position] = (),
        validator: OrderValidator | None = None,
        persistence: "LedgerPersistence | None" = None,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = _new_position_id,
    ) -> None:
        self.initial_capital = float(initial_capital)
        self._cash = float(initial_capital if cash_balance is None else cash_balance)
        self._positions: list[Position] = list(positions)
        self.validator = validator or OrderValidator()
        self._persistence = persistence
        self._clock = clock
        self._new_id = id_factory
        self._lock = threading.RLock()
        self.persistence_error: PersistenceWriteFailed | None = None

    # --- Construction from stored state ---

    @classmethod
    def from_state(cls, state: LedgerState, **kwargs) -> "Ledger":
        return cls(cash_balance=state.cash_balance, positions=state.positions, **kwargs)

    @classmethod
    def restore(
        cls,
        persistence: "LedgerPersistence",
        initial_capital: float = DEFAULT_INITIAL_CAPITAL,
        **kwargs,
    ) -> "Ledger":
        """Load the last saved state, or start fresh at initial_capital."""
        state = persistence.load(default_cash=initial_capital)
        logger.info(
            "Ledger restored: cash=%.2f, %d position(s)",
            state.cash_balance,
            len(state.positions),
        )
        return cls(
            initial_capital,
            cash_balance=state.cash_balance,
            positions=state.positions,
            persistence=persistence,
            **kwargs,
        )

    # --- Read model ---

    @property
    def cash_balance(self) -> float:
        with self._lock:
            return self._cash

    @property
    def sell_policy(self) -> SellPolicy:
        return self.validator.sell_policy

    @property
    def positions(self) -> tuple[Position, ...]:
        """All positions, most recent first."""
        with self._lock:
            return tuple(reversed(self._positions))

    def state(self) -> LedgerState:
        with self._lock:
            return LedgerState(cash_balance=self._cash, positions=tuple(self._positions))

    def get_position(self, position_id: str) -> Position:
        with self._lock:
            return self._positions[self._index_of(position_id)]

    def open_positions(self) -> list[Position]:
        return [p for p in self.positions if p.is_open]

    def closed_positions(self) -> list[Position]:
        return [p for p in self.positions if not p.is_open]

    def recent_closed(self, limit: int = 3) -> list[Position]:
        """Latest closed positions, most recent first."""
        return self.closed_positions()[:limit]

    def open_long_quantity(self, symbol: str) -> float:
        with self._lock:
            return sum(
                p.quantity for p in self._positions if p.is_open and p.side is Side.BUY and p.symbol == symbol
            )

    def realized_pnl(self) -> float:
        with self._lock:
            return sum(p.realized_profit for p in self._positions if not p.is_open)

    def unrealized_pnl(self, prices: PriceSource) -> float:
        lookup = _price_lookup(prices)
        with self._lock:
            return sum(p.profit_at(_mark(p, lookup)) for p in self._positions if p.is_open)

    def total_account_value(self, prices: PriceSource) -> float:
        """
        Cash plus the market value of every open position at current prices.

        Long positions add their value, shorts subtract it (the cash they
        credited is owed back). This departs from a plain
        cash + sum(quantity * price), which would count the proceeds of an
        open short twice. Symbols missing from prices are marked at entry
        price.
        """
        lookup = _price_lookup(prices)
        with self._lock:
            return self._cash + sum(p.market_value(_mark(p, lookup)) for p in self._positions if p.is_open)

    def return_pct(self, prices: PriceSource) -> float:
        """Account return relative to initial capital, in percent."""
        if self.initial_capital <= 0:
            return 0.0
        return (self.total_account_value(prices) / self.initial_capital - 1.0) * 100.0

    # --- Mutations ---

    def open_position(
        self,
        side: Side,
        symbol: str,
        name: str,
        quantity: float,
        current_price: float,
        opened_at: datetime | None = None,
    ) -> Position:
        """
        Record an executed order at current_price. Assumes the order passed
        validation. BUY debits quantity * price; SELL credits it.
        """
        with self._lock:
            position = self._open(Side.parse(side), symbol, name, quantity, current_price, opened_at)
            self._autosave()
            return position

    def close_position(self, position_id: str, current_price: float) -> Position:
        """
        Close an open position at current_price and book realized P&L.

        Raises PositionNotFound or PositionAlreadyClosed; the ledger is
        unchanged in both cases.
        """
        with self._lock:
            closed = self._close(position_id, current_price)
            self._autosave()
            return closed

    def execute(self, order: Order, current_price: float) -> OrderFill:
        """Validate and apply an order atomically, honouring the sell policy."""
        if not current_price > 0:
            raise ValueError(f"Execution price must be positive, got {current_price!r}")
        with self._lock:
            self.validator.check(order, current_price, self._cash, self.open_long_quantity(order.symbol))
            if order.side is Side.SELL and self.sell_policy is SellPolicy.CLOSE_LONG:
                fill = OrderFill(order=order, price=current_price, closed=self._sell_longs(order, current_price))
            else:
                opened = self._open(order.side, order.symbol, order.name, order.quantity, current_price, order.timestamp)
                fill = OrderFill(order=order, price=current_price, opened=opened)
            self._autosave()
            return fill

    def reset(self) -> None:
        """Back to initial capital with no positions."""
        with self._lock:
            self._cash = self.initial_capital
            self._positions = []
            logger.info("Ledger reset to %.2f", self._cash)
            self._autosave()

    def save(self) -> None:
        """Write state through the persistence adapter. Raises PersistenceWriteFailed."""
        if self._persistence is None:
            return
        self._persistence.save(self.state())

    # --- Internals (caller holds the lock) ---

    def _index_of(self, position_id: str) -> int:
        for i, p in enumerate(self._positions):
            if p.id == position_id:
                return i
        raise PositionNotFound(position_id)

    def _open(
        self,
        side: Side,
        symbol: str,
        name: str,
        quantity: float,
        price: float,
        opened_at: datetime | None,
    ) -> Position:
        # Build the record first: a bad quantity or price raises before any state changes.
        position = Position(
            id=self._new_id(),
            symbol=symbol,
            name=name or symbol,
            side=side,
            entry_price=float(price),
            quantity=float(quantity),
            opened_at=opened_at or self._clock(),
        )
        value = position.cost_basis
        self._cash = self._cash - value if side is Side.BUY else self._cash + value
        self._positions.append(position)
        logger.info(
            "Opened %s %s %s @ %.2f (id=%s), cash=%.2f",
            side.value,
            position.quantity,
            symbol,
            price,
            position.id,
            self._cash,
        )
        return position

    def _close(self, position_id: str, price: float) -> Position:
        if not price > 0:
            raise ValueError(f"Close price must be positive, got {price!r}")
        idx = self._index_of(position_id)
        position = self._positions[idx]
        if not position.is_open:
            raise PositionAlreadyClosed(position_id)
        closed = position.closed(float(price), self._clock())
        current_value = position.quantity * price
        self._cash = self._cash + current_value if position.side is Side.BUY else self._cash - current_value
        self._positions[idx] = closed
        logger.info(
            "Closed %s %s @ %.2f (id=%s), realized %.2f, cash=%.2f",
            position.symbol,
            position.side.value,
            price,
            position_id,
            closed.realized_profit,
            self._cash,
        )
        return closed

    def _sell_longs(self, order: Order, price: float) -> tuple[Position, ...]:
        """Close open longs in order.symbol oldest-first; split the last one if needed."""
        remaining = order.quantity
        closed: list[Position] = []
        for position in [p for p in self._positions if p.is_open and p.side is Side.BUY and p.symbol == order.symbol]:
            if remaining <= QTY_EPSILON:
                break
            if position.quantity <= remaining + QTY_EPSILON:
                closed.append(self._close(position.id, price))
                remaining -= position.quantity
                continue
            # Partial: the sold slice becomes its own closed record, the rest stays open under the old id.
            idx = self._index_of(position.id)
            slice_ = replace(position, id=self._new_id(), quantity=remaining)
            self._positions[idx] = replace(position, quantity=position.quantity - remaining)
            self._positions.insert(idx, slice_)
            closed.append(self._close(slice_.id, price))
            remaining = 0.0
        return tuple(closed)

    def _autosave(self) -> None:
        if self._persistence is None:
            return
        try:
            self._persistence.save(self.state())
        except PersistenceWriteFailed as e:
            self.persistence_error = e
            logger.warning("Ledger state not saved; continuing in memory: %s", e)
        else:
            self.persistence_error = None


def _price_lookup(prices: PriceSource) -> Callable[[str], float]:
    if isinstance(prices, Mapping):
        return prices.__getitem__
    return prices


def _mark(position: Position, lookup: Callable[[str], float]) -> float:
    try:
        return float(lookup(position.symbol))
    except KeyError:
        logger.debug("No price for %s; marking at entry %.2f", position.symbol, position.entry_price)
        return position.entry_price
