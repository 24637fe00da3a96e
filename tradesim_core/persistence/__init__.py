"""
Persistence layer: durable round-trip of ledger state.

KeyValueStore interface with in-memory and JSON-file stores; LedgerPersistence
encodes state as two versioned JSON records.
"""

from tradesim_core.persistence.store import InMemoryStore, JsonFileStore, KeyValueStore
from tradesim_core.persistence.adapter import ACCOUNT_KEY, TRADES_KEY, LedgerPersistence
from tradesim_core.persistence.records import SCHEMA_VERSION

__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    "LedgerPersistence",
    "TRADES_KEY",
    "ACCOUNT_KEY",
    "SCHEMA_VERSION",
]
