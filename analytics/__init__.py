"""
Account analytics on top of tradesim-core: performance metrics and reports.
"""

from analytics.metrics import Metrics, TradeStats, compute_metrics, equity_series, trade_stats
from analytics.report import print_report

__all__ = [
    "Metrics",
    "TradeStats",
    "compute_metrics",
    "equity_series",
    "trade_stats",
    "print_report",
]
