"""
LedgerPersistence: save and load ledger state through a KeyValueStore.

Writes report every failure as PersistenceWriteFailed. Reads never raise:
missing records give the default state, corrupt ones give the default
state plus a PersistenceReadCorrupt in last_error.
"""

from __future__ import annotations

import json
import logging

from tradesim_core.errors import PersistenceReadCorrupt, PersistenceWriteFailed
from tradesim_core.ledger import DEFAULT_INITIAL_CAPITAL, LedgerState
from tradesim_core.persistence.records import (
    RecordError,
    decode_account,
    decode_positions,
    encode_account,
    encode_positions,
)
from tradesim_core.persistence.store import KeyValueStore

logger = logging.getLogger(__name__)

TRADES_KEY = "tradequest_trades"
ACCOUNT_KEY = "tradequest_account"


class LedgerPersistence:
    """Ledger state <-> two JSON records (trade list, cash balance)."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store
        self.last_error: PersistenceReadCorrupt | None = None

    def save(self, state: LedgerState) -> None:
        try:
            trades = json.dumps(encode_positions(state.positions), allow_nan=False)
            account = json.dumps(encode_account(state.cash_balance), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise PersistenceWriteFailed(f"Could not serialize ledger state: {e}") from e
        try:
            previous = self.store.get(TRADES_KEY)
            self.store.set(TRADES_KEY, trades)
        except OSError as e:
            raise PersistenceWriteFailed(f"Could not write ledger state: {e}") from e
        try:
            self.store.set(ACCOUNT_KEY, account)
        except OSError as e:
            # Positions and balance are stored together or not at all.
            self._restore_trades(previous)
            raise PersistenceWriteFailed(f"Could not write ledger state: {e}") from e
        logger.debug("Saved ledger: cash=%.2f, %d position(s)", state.cash_balance, len(state.positions))

    def load(self, default_cash: float = DEFAULT_INITIAL_CAPITAL) -> LedgerState:
        """
        Last saved state. A record that is absent falls back to its default
        (no positions / default_cash); any unreadable record discards both.
        """
        self.last_error = None
        try:
            raw_trades = self.store.get(TRADES_KEY)
            raw_account = self.store.get(ACCOUNT_KEY)
        except OSError as e:
            return self._fallback(PersistenceReadCorrupt(TRADES_KEY, f"store unreadable: {e}"), default_cash)

        positions = ()
        cash = default_cash
        if raw_trades is not None:
            try:
                positions = decode_positions(json.loads(raw_trades))
            except (json.JSONDecodeError, RecordError) as e:
                return self._fallback(PersistenceReadCorrupt(TRADES_KEY, str(e)), default_cash)
        if raw_account is not None:
            try:
                cash = decode_account(json.loads(raw_account))
            except (json.JSONDecodeError, RecordError) as e:
                return self._fallback(PersistenceReadCorrupt(ACCOUNT_KEY, str(e)), default_cash)
        return LedgerState(cash_balance=cash, positions=positions)

    def has_saved_state(self) -> bool:
        return self.store.get(TRADES_KEY) is not None or self.store.get(ACCOUNT_KEY) is not None

    def clear(self) -> None:
        self.store.delete(TRADES_KEY)
        self.store.delete(ACCOUNT_KEY)

    def _restore_trades(self, previous: str | None) -> None:
        try:
            if previous is None:
                self.store.delete(TRADES_KEY)
            else:
                self.store.set(TRADES_KEY, previous)
        except OSError as e:
            logger.error("Could not roll back %s after a failed save: %s", TRADES_KEY, e)

    def _fallback(self, error: PersistenceReadCorrupt, default_cash: float) -> LedgerState:
        self.last_error = error
        logger.warning("%s; starting from a fresh ledger", error)
        return LedgerState(cash_balance=default_cash)
