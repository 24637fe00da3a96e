"""
Paper trading example: a simulator session against the synthetic price feed.

Shows: TradingSession built from TRADESIM_* config, buys and short sells,
a rejected order, price ticks, closing positions, and the account report.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from analytics import print_report
from tradesim_core import SimulatorConfig
from tradesim_core.events import Event, ExecutedTrade, PriceTick
from tradesim_core.execution import TradingSession


def print_event_observer(event: Event) -> None:
    """Observer: print fills and closes as they happen."""
    payload = event.payload
    if isinstance(payload, ExecutedTrade):
        if payload.action == "close":
            print(f"  [Observer] CLOSE {payload.symbol} @ {payload.price:.2f} -> {payload.realized_profit:+.2f}")
        else:
            print(f"  [Observer] FILL {payload.side.value} {payload.quantity} {payload.symbol} @ {payload.price:.2f}")
    elif isinstance(payload, PriceTick):
        print(f"  [Observer] tick {event.timestamp:%Y-%m-%d}: AAPL {payload.prices['AAPL']:.2f}")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    config = SimulatorConfig.from_env()
    session = TradingSession.from_config(config)
    session.subscribe(print_event_observer)
    start = datetime.now()

    print("--- Orders ---")
    for symbol, side, quantity in [("AAPL", "buy", 10), ("BTC", "sell", 0.05), ("ETH", "buy", 1_000)]:
        status = session.execute(symbol, side, quantity, timestamp=start)
        print(f"  {side} {quantity} {symbol} -> {status.status.value} {status.message or ''}")

    print("\n--- Five ticks ---")
    for day in range(1, 6):
        session.tick(start + timedelta(days=day))

    print("\n--- Close everything ---")
    for position in session.ledger.open_positions():
        session.close(position.id, timestamp=start + timedelta(days=6))

    print("\n--- Rejected log ---")
    for entry in session.get_rejected_log():
        print(f"  Rejected: reason={entry.reason}, order={entry.order}")

    print()
    print_report(session.ledger, session.feed.price, session.equity_curve)


if __name__ == "__main__":
    main()
