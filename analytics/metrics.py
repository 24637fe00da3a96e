"""
Account metrics: PnL, Sharpe ratio, drawdown, CAGR from an equity curve,
and win/loss statistics from closed positions.

Annualization assumes 252 trading days.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

import numpy as np
import pandas as pd

from tradesim_core.position import Position


@dataclass
class Metrics:
    """Account performance over an equity curve."""

    initial_value: float
    final_value: float
    total_pnl: float
    total_return_pct: float
    cagr: float
    sharpe_ratio: float
    max_drawdown: float
    max_drawdown_pct: float


@dataclass
class TradeStats:
    """Realized results of closed positions."""

    closed_count: int
    wins: int
    losses: int
    win_rate: float
    realized_pnl: float
    best_trade: float | None
    worst_trade: float | None


def equity_series(equity_curve: Sequence[tuple[datetime, float]]) -> pd.Series:
    """Equity curve as a float Series indexed by timestamp."""
    if not equity_curve:
        return pd.Series(dtype=float)
    index = pd.DatetimeIndex([ts for ts, _ in equity_curve], name="datetime")
    return pd.Series([float(v) for _, v in equity_curve], index=index, name="equity")


def compute_metrics(
    initial_value: float,
    equity_curve: Sequence[tuple[datetime, float]],
    *,
    trading_days_per_year: int = 252,
    risk_free_rate: float = 0.0,
) -> Metrics:
    """
    Compute performance metrics from starting capital and an equity curve.

    Parameters
    ----------
    initial_value : float
        Account value before the first point (e.g. initial capital).
    equity_curve : sequence of (datetime, value)
        Time-ordered account values, e.g. TradingSession.equity_curve.
    trading_days_per_year : int
        Used for annualizing CAGR and Sharpe.
    risk_free_rate : float
        Annual risk-free rate for Sharpe.

    Returns
    -------
    Metrics
    """
    equity = equity_series(equity_curve)
    if equity.empty:
        return Metrics(initial_value, initial_value, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    final_value = float(equity.iloc[-1])
    total_pnl = final_value - initial_value
    total_return_pct = total_pnl / initial_value * 100.0 if initial_value else 0.0

    elapsed_days = (equity.index[-1] - equity.index[0]).total_seconds() / 86400.0
    years = max(elapsed_days / trading_days_per_year, 1e-10)
    if initial_value > 0 and final_value > 0:
        cagr = ((final_value / initial_value) ** (1.0 / years) - 1.0) * 100.0
    else:
        cagr = 0.0

    returns = equity.pct_change().dropna()
    excess = returns - risk_free_rate / trading_days_per_year
    std = float(excess.std(ddof=0)) if len(excess) else 0.0
    sharpe = float(excess.mean() / std * np.sqrt(trading_days_per_year)) if std > 1e-14 else 0.0

    peak = equity.cummax()
    drawdown = peak - equity
    max_dd = float(drawdown.max())
    trough_peak = float(peak.iloc[int(np.argmax(drawdown.to_numpy()))])
    max_dd_pct = max_dd / trough_peak * 100.0 if trough_peak > 0 else 0.0

    return Metrics(
        initial_value=initial_value,
        final_value=final_value,
        total_pnl=total_pnl,
        total_return_pct=total_return_pct,
        cagr=cagr,
        sharpe_ratio=sharpe,
        max_drawdown=max_dd,
        max_drawdown_pct=max_dd_pct,
    )


def trade_stats(positions: Iterable[Position]) -> TradeStats:
    """Win/loss summary over the closed positions in positions (open ones are ignored)."""
    profits = np.array([p.realized_profit for p in positions if not p.is_open], dtype=float)
    if profits.size == 0:
        return TradeStats(0, 0, 0, 0.0, 0.0, None, None)
    wins = int((profits > 0).sum())
    return TradeStats(
        closed_count=int(profits.size),
        wins=wins,
        losses=int((profits < 0).sum()),
        win_rate=wins / profits.size * 100.0,
        realized_pnl=float(profits.sum()),
        best_trade=float(profits.max()),
        worst_trade=float(profits.min()),
    )
