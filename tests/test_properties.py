"""
Property-based tests for ledger accounting, persistence round-trip and the
price generator.
"""

from datetime import datetime

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tradesim_core import AssetClass, Ledger, LedgerState, Side, generate_price_series
from tradesim_core.errors import PositionAlreadyClosed
from tradesim_core.persistence import InMemoryStore, LedgerPersistence

prices = st.floats(min_value=0.01, max_value=100_000, allow_nan=False, allow_infinity=False)
quantities = st.floats(min_value=0.001, max_value=100, allow_nan=False, allow_infinity=False)
sides = st.sampled_from([Side.BUY, Side.SELL])
symbols = st.sampled_from(["AAPL", "TSLA", "BTC"])


def _clock():
    return datetime(2024, 3, 1, 12, 0, 0)


# --- Cash accounting ---


@settings(max_examples=100)
@given(quantity=quantities, price=prices)
def test_buy_debits_cost(quantity, price):
    ledger = Ledger(1_000_000_000.0, clock=_clock)
    ledger.open_position(Side.BUY, "AAPL", "Apple Inc.", quantity, price)
    assert ledger.cash_balance == pytest.approx(1_000_000_000.0 - quantity * price)


@settings(max_examples=100)
@given(quantity=quantities, price=prices)
def test_sell_credits_proceeds(quantity, price):
    ledger = Ledger(clock=_clock)
    ledger.open_position(Side.SELL, "AAPL", "Apple Inc.", quantity, price)
    assert ledger.cash_balance == pytest.approx(10_000.0 + quantity * price)


@settings(max_examples=100)
@given(side=sides, quantity=quantities, price=prices)
def test_round_trip_at_same_price_is_flat(side, quantity, price):
    ledger = Ledger(1_000_000_000.0, clock=_clock)
    p = ledger.open_position(side, "AAPL", "Apple Inc.", quantity, price)
    closed = ledger.close_position(p.id, price)
    assert closed.realized_profit == pytest.approx(0.0, abs=1e-6)
    assert ledger.cash_balance == pytest.approx(1_000_000_000.0)


@settings(max_examples=50)
@given(side=sides, quantity=quantities, entry=prices, exit_=prices)
def test_second_close_always_rejected(side, quantity, entry, exit_):
    ledger = Ledger(1_000_000_000.0, clock=_clock)
    p = ledger.open_position(side, "AAPL", "Apple Inc.", quantity, entry)
    ledger.close_position(p.id, exit_)
    cash = ledger.cash_balance
    with pytest.raises(PositionAlreadyClosed):
        ledger.close_position(p.id, exit_)
    assert ledger.cash_balance == cash


@settings(max_examples=50)
@given(side=sides, quantity=quantities, entry=prices, exit_=prices)
def test_close_preserves_account_value(side, quantity, entry, exit_):
    ledger = Ledger(1_000_000_000.0, clock=_clock)
    p = ledger.open_position(side, "AAPL", "Apple Inc.", quantity, entry)
    before = ledger.total_account_value({"AAPL": exit_})
    ledger.close_position(p.id, exit_)
    assert ledger.total_account_value({"AAPL": exit_}) == pytest.approx(before)
    # Nothing open: value is cash.
    assert ledger.total_account_value({}) == ledger.cash_balance


# --- Persistence round-trip ---

operations = st.lists(
    st.tuples(sides, symbols, quantities, prices, st.booleans(), prices),
    max_size=12,
)


@settings(max_examples=50)
@given(ops=operations)
def test_load_returns_saved_state(ops):
    persistence = LedgerPersistence(InMemoryStore())
    ledger = Ledger(1_000_000.0, persistence=persistence, clock=_clock)
    for side, symbol, quantity, entry, close_it, exit_ in ops:
        p = ledger.open_position(side, symbol, symbol, quantity, entry)
        if close_it:
            ledger.close_position(p.id, exit_)
    loaded = persistence.load(default_cash=1_000_000.0)
    assert persistence.last_error is None
    assert loaded == ledger.state()
    assert isinstance(loaded, LedgerState)


# --- Price generator ---


@settings(max_examples=50)
@given(
    asset_class=st.sampled_from(list(AssetClass)),
    days=st.integers(min_value=0, max_value=120),
    seed=st.integers(min_value=0, max_value=2**32 - 1),
)
def test_price_series_positive_and_reproducible(asset_class, days, seed):
    end = datetime(2024, 6, 30)
    df = generate_price_series(asset_class, days, seed=seed, end=end)
    assert len(df) == days + 1
    assert (df["price"] > 0).all()
    again = generate_price_series(asset_class, days, seed=seed, end=end)
    assert df.equals(again)
