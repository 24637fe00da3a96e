"""
Tests for persistence: stores, LedgerPersistence round-trip, corrupt and legacy records.
"""

import itertools
import json
from datetime import datetime

import pytest

from tradesim_core import Ledger, LedgerState, Side
from tradesim_core.errors import PersistenceReadCorrupt, PersistenceWriteFailed
from tradesim_core.persistence import (
    ACCOUNT_KEY,
    SCHEMA_VERSION,
    TRADES_KEY,
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
    LedgerPersistence,
)


def _traded_ledger(persistence=None) -> Ledger:
    ledger = Ledger(persistence=persistence)
    a = ledger.open_position(Side.BUY, "AAPL", "Apple Inc.", 5, 175.42)
    ledger.open_position(Side.SELL, "BTC", "Bitcoin", 0.05, 61_245.30)
    ledger.close_position(a.id, 180.0)
    return ledger


class BrokenStore(KeyValueStore):
    """Every operation fails like a full or unavailable disk."""

    def get(self, key):
        raise OSError("disk unavailable")

    def set(self, key, value):
        raise OSError("quota exceeded")

    def delete(self, key):
        raise OSError("disk unavailable")


# --- Stores ---


def test_in_memory_store_basic():
    store = InMemoryStore()
    assert store.get("k") is None
    store.set("k", "v")
    assert store.get("k") == "v"
    store.delete("k")
    store.delete("k")
    assert store.get("k") is None


def test_in_memory_store_quota():
    store = InMemoryStore(quota=5)
    store.set("a", "123")
    with pytest.raises(OSError):
        store.set("b", "456")
    store.set("a", "12345")  # overwriting frees the old value


def test_json_file_store(tmp_path):
    store = JsonFileStore(tmp_path / "state")
    assert store.get(TRADES_KEY) is None
    store.set(TRADES_KEY, '{"x": 1}')
    assert (tmp_path / "state" / f"{TRADES_KEY}.json").read_text() == '{"x": 1}'
    assert JsonFileStore(tmp_path / "state").get(TRADES_KEY) == '{"x": 1}'
    store.delete(TRADES_KEY)
    assert store.get(TRADES_KEY) is None
    assert list((tmp_path / "state").iterdir()) == []


def test_json_file_store_rejects_path_keys(tmp_path):
    with pytest.raises(ValueError):
        JsonFileStore(tmp_path).set("../escape", "x")


# --- Round-trip ---


def test_save_load_round_trip():
    persistence = LedgerPersistence(InMemoryStore())
    state = _traded_ledger().state()
    persistence.save(state)
    assert persistence.load() == state
    assert persistence.last_error is None


def test_round_trip_through_files(tmp_path):
    persistence = LedgerPersistence(JsonFileStore(tmp_path))
    state = _traded_ledger().state()
    persistence.save(state)
    assert LedgerPersistence(JsonFileStore(tmp_path)).load() == state


def test_saved_records_are_versioned_json():
    store = InMemoryStore()
    LedgerPersistence(store).save(_traded_ledger().state())
    trades = json.loads(store.get(TRADES_KEY))
    account = json.loads(store.get(ACCOUNT_KEY))
    assert trades["version"] == SCHEMA_VERSION
    assert account["version"] == SCHEMA_VERSION
    first = trades["positions"][0]
    assert first["symbol"] == "AAPL"
    assert first["side"] == "buy"
    assert first["entryPrice"] == 175.42
    assert first["status"] == "closed"
    assert first["realizedProfit"] == pytest.approx(22.90)
    assert "realizedProfit" not in trades["positions"][1]
    assert account["cashBalance"] == pytest.approx(10_000.0 + 22.90 + 3_062.265)


# --- Defaults / corrupt ---


def test_load_empty_store_returns_default():
    persistence = LedgerPersistence(InMemoryStore())
    assert persistence.load() == LedgerState(cash_balance=10_000.0, positions=())
    assert not persistence.has_saved_state()
    assert persistence.last_error is None


def test_load_empty_store_uses_given_default_cash():
    assert LedgerPersistence(InMemoryStore()).load(default_cash=2_500.0).cash_balance == 2_500.0


@pytest.mark.parametrize(
    "trades, account",
    [
        ("{not json", None),
        (None, "[1, 2"),
        ('{"version": 99, "positions": []}', None),
        (None, '{"version": 99, "cashBalance": 1}'),
        ('{"version": 1, "positions": [{"id": "x"}]}', None),
        ('{"version": 1, "positions": "nope"}', None),
        ('"just a string"', None),
        (None, '"10000"'),
        (None, '{"version": 1, "cashBalance": NaN}'),
        (None, '{"version": 1, "cashBalance": Infinity}'),
        (None, "-Infinity"),
        (
            '{"version": 1, "positions": [{"id": "x", "symbol": "A", "name": "A", "side": "buy", '
            '"entryPrice": NaN, "quantity": 1, "openedAt": "2024-01-01T00:00:00", "status": "open"}]}',
            None,
        ),
        (
            '{"version": 1, "positions": [{"id": "x", "symbol": "A", "name": "A", "side": "buy", '
            '"entryPrice": 1, "quantity": 1, "openedAt": "2024-01-01T00:00:00", "status": "closed"}]}',
            None,
        ),
    ],
)
def test_load_corrupt_record_falls_back_to_default(trades, account):
    initial = {}
    if trades is not None:
        initial[TRADES_KEY] = trades
    if account is not None:
        initial[ACCOUNT_KEY] = account
    persistence = LedgerPersistence(InMemoryStore(initial))
    state = persistence.load()
    assert state == LedgerState()
    assert isinstance(persistence.last_error, PersistenceReadCorrupt)


def test_load_unreadable_store_falls_back_to_default():
    persistence = LedgerPersistence(BrokenStore())
    assert persistence.load() == LedgerState()
    assert isinstance(persistence.last_error, PersistenceReadCorrupt)


def test_save_failure_raises_write_failed():
    persistence = LedgerPersistence(InMemoryStore(quota=10))
    with pytest.raises(PersistenceWriteFailed):
        persistence.save(_traded_ledger().state())


def test_save_non_finite_cash_raises_write_failed():
    persistence = LedgerPersistence(InMemoryStore())
    with pytest.raises(PersistenceWriteFailed):
        persistence.save(LedgerState(cash_balance=float("nan")))


def test_load_invalid_utf8_file_falls_back_to_default(tmp_path):
    (tmp_path / f"{TRADES_KEY}.json").write_bytes(b"\xff\xfe\x00garbage")
    persistence = LedgerPersistence(JsonFileStore(tmp_path))
    assert persistence.load() == LedgerState()
    assert isinstance(persistence.last_error, PersistenceReadCorrupt)


def _sequential_ids():
    counter = itertools.count(1)
    return lambda: f"pos-{next(counter)}"


def _fixed_clock():
    return datetime(2024, 5, 1, 12, 0, 0)


def test_failed_account_write_keeps_stored_records_consistent():
    reference = InMemoryStore()
    expected = Ledger(persistence=LedgerPersistence(reference), clock=_fixed_clock, id_factory=_sequential_ids())
    expected.open_position(Side.BUY, "AAPL", "Apple Inc.", 5, 175.42)
    expected.open_position(Side.BUY, "MSFT", "Microsoft", 1, 415.56)
    new_trades = reference.get(TRADES_KEY)

    store = InMemoryStore()
    ledger = Ledger(persistence=LedgerPersistence(store), clock=_fixed_clock, id_factory=_sequential_ids())
    ledger.open_position(Side.BUY, "AAPL", "Apple Inc.", 5, 175.42)
    last_good = ledger.state()
    # Room for the new trades record next to the old balance, not the new balance.
    store.quota = len(new_trades) + len(store.get(ACCOUNT_KEY))

    ledger.open_position(Side.BUY, "MSFT", "Microsoft", 1, 415.56)
    assert isinstance(ledger.persistence_error, PersistenceWriteFailed)
    assert ledger.cash_balance == pytest.approx(8_707.34)
    assert LedgerPersistence(store).load() == last_good


def test_failed_first_save_leaves_no_trades_record():
    class AccountWriteFails(InMemoryStore):
        def set(self, key, value):
            if key == ACCOUNT_KEY:
                raise OSError("quota exceeded")
            super().set(key, value)

    store = AccountWriteFails()
    with pytest.raises(PersistenceWriteFailed):
        LedgerPersistence(store).save(_traded_ledger().state())
    assert store.get(TRADES_KEY) is None


def test_clear():
    store = InMemoryStore()
    persistence = LedgerPersistence(store)
    persistence.save(LedgerState())
    assert persistence.has_saved_state()
    persistence.clear()
    assert not persistence.has_saved_state()


# --- Legacy records ---


def test_load_migrates_unversioned_browser_records():
    legacy_trades = [
        {
            "id": "1714564800001",
            "symbol": "BTC",
            "name": "Bitcoin",
            "type": "sell",
            "price": 61245.3,
            "quantity": 0.05,
            "timestamp": "2024-05-01T12:00:00.001Z",
            "status": "open",
        },
        {
            "id": "1714564800000",
            "symbol": "AAPL",
            "name": "Apple Inc.",
            "type": "buy",
            "price": 175.42,
            "quantity": 5,
            "timestamp": "2024-05-01T12:00:00.000Z",
            "status": "closed",
            "profit": 22.9,
        },
    ]
    store = InMemoryStore({TRADES_KEY: json.dumps(legacy_trades), ACCOUNT_KEY: "13085.165"})
    state = LedgerPersistence(store).load()
    assert state.cash_balance == pytest.approx(13_085.165)
    # Stored most-recent-first; loaded in execution order.
    assert [p.symbol for p in state.positions] == ["AAPL", "BTC"]
    aapl, btc = state.positions
    assert aapl.side is Side.BUY
    assert aapl.realized_profit == pytest.approx(22.9)
    assert btc.side is Side.SELL
    assert btc.is_open
    assert btc.opened_at.year == 2024


def test_restored_ledger_continues_trading():
    store = InMemoryStore()
    persistence = LedgerPersistence(store)
    original = _traded_ledger(persistence)
    restored = Ledger.restore(LedgerPersistence(store))
    assert restored.state() == original.state()
    btc = restored.open_positions()[0]
    restored.close_position(btc.id, 60_000.0)
    assert Ledger.restore(LedgerPersistence(store)).get_position(btc.id).realized_profit == pytest.approx(62.265)


# --- Autosave ---


def test_ledger_autosaves_after_each_mutation():
    store = InMemoryStore()
    ledger = Ledger(persistence=LedgerPersistence(store))
    ledger.open_position(Side.BUY, "AAPL", "Apple Inc.", 1, 100.0)
    assert LedgerPersistence(store).load() == ledger.state()


def test_ledger_autosave_failure_is_recorded_not_raised():
    ledger = Ledger(persistence=LedgerPersistence(InMemoryStore(quota=10)))
    p = ledger.open_position(Side.BUY, "AAPL", "Apple Inc.", 1, 100.0)
    assert isinstance(ledger.persistence_error, PersistenceWriteFailed)
    assert ledger.get_position(p.id) == p
    assert ledger.cash_balance == pytest.approx(9_900.0)
    with pytest.raises(PersistenceWriteFailed):
        ledger.save()


def test_opened_at_round_trips_timezone():
    persistence = LedgerPersistence(InMemoryStore())
    ledger = Ledger(clock=lambda: datetime.fromisoformat("2024-05-01T12:00:00+02:00"))
    ledger.open_position(Side.BUY, "AAPL", "Apple Inc.", 1, 100.0)
    persistence.save(ledger.state())
    assert persistence.load().positions[0].opened_at.utcoffset().total_seconds() == 7200
