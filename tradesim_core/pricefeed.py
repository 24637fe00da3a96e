"""
Price feed: synthetic price series and live quotes for the simulator.

Stands in for a real market-data feed. Every random draw comes from an
injectable numpy Generator, so a seed reproduces the exact same prices.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

import numpy as np
import pandas as pd

from tradesim_core.errors import UnknownSymbol

logger = logging.getLogger(__name__)

BASE_PRICE = 100.0
# Floor for any generated price; prices are never zero or negative.
MIN_PRICE = 0.10


class AssetClass(Enum):
    CRYPTO = "crypto"
    VOLATILE_EQUITY = "volatile_equity"
    BLUE_CHIP = "blue_chip"
    EQUITY = "equity"

    @classmethod
    def parse(cls, value: "AssetClass | str") -> "AssetClass":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            known = ", ".join(c.value for c in cls)
            raise ValueError(f"Unknown asset class {value!r}; expected one of: {known}") from None


@dataclass(frozen=True)
class FeedPreset:
    """Per-step random walk parameters, in price units at BASE_PRICE."""

    volatility: float
    drift: float


PRESETS: dict[AssetClass, FeedPreset] = {
    AssetClass.CRYPTO: FeedPreset(volatility=4.0, drift=0.5),
    AssetClass.VOLATILE_EQUITY: FeedPreset(volatility=3.0, drift=0.0),
    AssetClass.BLUE_CHIP: FeedPreset(volatility=1.5, drift=0.2),
    AssetClass.EQUITY: FeedPreset(volatility=2.0, drift=0.0),
}


@dataclass(frozen=True)
class Asset:
    """Catalog entry: a tradable symbol and its reference quote."""

    symbol: str
    name: str
    asset_class: AssetClass
    reference_price: float


@dataclass(frozen=True)
class Quote:
    symbol: str
    name: str
    price: float
    change: float
    change_percent: float


DEFAULT_ASSETS: tuple[Asset, ...] = (
    Asset("AAPL", "Apple Inc.", AssetClass.BLUE_CHIP, 175.42),
    Asset("TSLA", "Tesla Inc.", AssetClass.VOLATILE_EQUITY, 192.36),
    Asset("MSFT", "Microsoft", AssetClass.BLUE_CHIP, 415.56),
    Asset("AMZN", "Amazon", AssetClass.EQUITY, 182.41),
    Asset("BTC", "Bitcoin", AssetClass.CRYPTO, 61245.30),
    Asset("ETH", "Ethereum", AssetClass.CRYPTO, 3423.91),
)


def _make_rng(seed: int | None, rng: np.random.Generator | None) -> np.random.Generator:
    if rng is not None:
        return rng
    return np.random.default_rng(seed)


def _step(price: float, preset: FeedPreset, rng: np.random.Generator, scale: float) -> float:
    """One random-walk step, rounded to cents and clamped to MIN_PRICE."""
    change = preset.drift + rng.uniform(-preset.volatility, preset.volatility)
    return max(round(price + change * scale, 2), MIN_PRICE)


def generate_price_series(
    asset_class: AssetClass | str,
    days: int,
    *,
    seed: int | None = None,
    rng: np.random.Generator | None = None,
    base_price: float = BASE_PRICE,
    end: date | datetime | None = None,
) -> pd.DataFrame:
    """
    Generate a synthetic daily price series.

    Parameters
    ----------
    asset_class : AssetClass or str
        Selects the volatility/drift preset; nothing else.
    days : int
        Number of steps. The series has days + 1 rows (row 0 is base_price).
    seed : int, optional
        Seed for a fresh Generator. Ignored when rng is given.
    rng : numpy.random.Generator, optional
        Random source to draw from (advanced in place).
    base_price : float
        Starting price. Steps scale with base_price / 100.
    end : date or datetime, optional
        Last date of the series (default: today).

    Returns
    -------
    pd.DataFrame
        DatetimeIndex named 'date' (daily, strictly increasing) and a
        'price' column, every value > 0.
    """
    if isinstance(days, bool) or not isinstance(days, (int, np.integer)):
        raise ValueError(f"days must be an integer, got {days!r}")
    if days < 0:
        raise ValueError(f"days must be >= 0, got {days}")
    if base_price <= 0:
        raise ValueError(f"base_price must be positive, got {base_price}")

    preset = PRESETS[AssetClass.parse(asset_class)]
    generator = _make_rng(seed, rng)
    scale = base_price / BASE_PRICE

    prices = [round(base_price, 2)]
    for _ in range(days):
        prices.append(_step(prices[-1], preset, generator, scale))

    end_ts = pd.Timestamp(end if end is not None else date.today()).normalize()
    dates = pd.date_range(end=end_ts, periods=days + 1, freq="D", name="date")
    return pd.DataFrame({"price": prices}, index=dates)


def series_to_pairs(df: pd.DataFrame) -> list[tuple[date, float]]:
    """(date, price) pairs in series order."""
    return [(ts.date(), float(p)) for ts, p in df["price"].items()]


class PriceFeed:
    """
    Quote board for a catalog of assets.

    price(symbol) is the lookup the ledger consumes; tick() advances every
    asset one random-walk step scaled to its reference price. Reads and
    updates of the board share one lock, so a reader never sees a half-ticked
    board.
    """

    def __init__(
        self,
        assets: tuple[Asset, ...] | list[Asset] = DEFAULT_ASSETS,
        *,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._assets: dict[str, Asset] = {a.symbol: a for a in assets}
        self._rng = _make_rng(seed, rng)
        self._prices: dict[str, float] = {a.symbol: a.reference_price for a in assets}
        self._previous: dict[str, float] = dict(self._prices)
        self._lock = threading.RLock()

    def _asset(self, symbol: str) -> Asset:
        try:
            return self._assets[symbol]
        except KeyError:
            raise UnknownSymbol(symbol) from None

    def symbols(self) -> list[str]:
        return list(self._assets)

    def asset(self, symbol: str) -> Asset:
        return self._asset(symbol)

    def price(self, symbol: str) -> float:
        """Current price for symbol."""
        self._asset(symbol)
        with self._lock:
            return self._prices[symbol]

    __call__ = price

    def prices(self) -> dict[str, float]:
        with self._lock:
            return dict(self._prices)

    def quote(self, symbol: str) -> Quote:
        asset = self._asset(symbol)
        with self._lock:
            price = self._prices[symbol]
            prev = self._previous[symbol]
        change = round(price - prev, 2)
        change_pct = round(change / prev * 100.0, 2) if prev else 0.0
        return Quote(symbol=symbol, name=asset.name, price=price, change=change, change_percent=change_pct)

    def quotes(self) -> list[Quote]:
        with self._lock:
            return [self.quote(s) for s in self._assets]

    def set_price(self, symbol: str, price: float) -> None:
        """Pin the current price (replays and tests)."""
        self._asset(symbol)
        if not price > 0:
            raise ValueError(f"Price must be positive, got {price!r}")
        with self._lock:
            self._previous[symbol] = self._prices[symbol]
            self._prices[symbol] = float(price)

    def tick(self) -> dict[str, float]:
        """Advance every asset one step. Returns the new prices."""
        with self._lock:
            for symbol, asset in self._assets.items():
                preset = PRESETS[asset.asset_class]
                scale = asset.reference_price / BASE_PRICE
                self._previous[symbol] = self._prices[symbol]
                self._prices[symbol] = _step(self._prices[symbol], preset, self._rng, scale)
            prices = dict(self._prices)
        logger.debug("Price tick: %s", prices)
        return prices

    def history(self, symbol: str, days: int = 30, *, end: date | datetime | None = None) -> pd.DataFrame:
        """Chart series for symbol, drawn from this feed's random source."""
        asset = self._asset(symbol)
        with self._lock:
            return generate_price_series(asset.asset_class, days, rng=self._rng, end=end)
