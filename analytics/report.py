"""
Account report: print a summary of a ledger at current prices.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from analytics.metrics import Metrics, compute_metrics, trade_stats
from tradesim_core.ledger import Ledger, PriceSource


def print_report(
    ledger: Ledger,
    prices: PriceSource,
    equity_curve: Sequence[tuple[datetime, float]] = (),
    *,
    recent: int = 3,
) -> Metrics:
    """
    Print balance, account value, open positions, recent closes and
    performance figures. Returns the computed Metrics.
    """
    value = ledger.total_account_value(prices)
    curve = list(equity_curve) or [(datetime.now(), value)]
    metrics = compute_metrics(ledger.initial_capital, curve)
    stats = trade_stats(ledger.positions)
    open_positions = ledger.open_positions()

    print("--- Paper Trading Account ---")
    print(f"Cash balance:    {ledger.cash_balance:,.2f}")
    print(f"Account value:   {value:,.2f} ({ledger.return_pct(prices):+.2f}%)")
    print(f"Realized P&L:    {stats.realized_pnl:,.2f}")
    print(f"Unrealized P&L:  {ledger.unrealized_pnl(prices):,.2f}")
    print(f"Open positions:  {len(open_positions)}")
    for p in open_positions:
        print(f"  {p.side.value:<4} {p.quantity:g} {p.symbol} @ {p.entry_price:,.2f}")
    print(f"Closed trades:   {stats.closed_count} (win rate {stats.win_rate:.1f}%)")
    for p in ledger.recent_closed(recent):
        print(f"  {p.side.value:<4} {p.quantity:g} {p.symbol} -> {p.realized_profit:+,.2f}")
    print(f"Sharpe ratio:    {metrics.sharpe_ratio:.2f}")
    print(f"Max drawdown:    {metrics.max_drawdown:,.2f} ({metrics.max_drawdown_pct:.2f}%)")
    print("-----------------------------")
    return metrics
