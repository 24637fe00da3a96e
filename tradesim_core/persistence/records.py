"""
Wire format for persisted ledger state.

Two JSON records, each tagged with a schema version:

    trades:  {"version": 1, "positions": [{id, symbol, name, side, entryPrice,
              quantity, openedAt, status, realizedProfit?, closedAt?, exitPrice?}]}
    account: {"version": 1, "cashBalance": 9122.9}

Version 0 is the untagged layout of the original browser app: a bare list
of trades (most recent first, with type/price/timestamp/profit fields) and
a bare number for the balance. It is read and upgraded, never written.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from tradesim_core.order import Side
from tradesim_core.position import Position, PositionStatus

SCHEMA_VERSION = 1


class RecordError(ValueError):
    """A stored record does not match any known schema."""


def _parse_time(value: Any) -> datetime:
    if not isinstance(value, str):
        raise RecordError(f"expected ISO timestamp, got {value!r}")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise RecordError(f"bad timestamp {value!r}") from e


def _number(value: Any, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RecordError(f"{field} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise RecordError(f"{field} must be finite, got {value!r}")
    return float(value)


def position_to_record(position: Position) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": position.id,
        "symbol": position.symbol,
        "name": position.name,
        "side": position.side.value,
        "entryPrice": position.entry_price,
        "quantity": position.quantity,
        "openedAt": position.opened_at.isoformat(),
        "status": position.status.value,
    }
    if position.realized_profit is not None:
        record["realizedProfit"] = position.realized_profit
    if position.closed_at is not None:
        record["closedAt"] = position.closed_at.isoformat()
    if position.exit_price is not None:
        record["exitPrice"] = position.exit_price
    return record


def position_from_record(record: Any) -> Position:
    if not isinstance(record, dict):
        raise RecordError(f"position record must be an object, got {type(record).__name__}")
    try:
        realized = record.get("realizedProfit")
        closed_at = record.get("closedAt")
        exit_price = record.get("exitPrice")
        return Position(
            id=str(record["id"]),
            symbol=str(record["symbol"]),
            name=str(record.get("name") or record["symbol"]),
            side=Side(record["side"]),
            entry_price=_number(record["entryPrice"], "entryPrice"),
            quantity=_number(record["quantity"], "quantity"),
            opened_at=_parse_time(record["openedAt"]),
            status=PositionStatus(record["status"]),
            realized_profit=None if realized is None else _number(realized, "realizedProfit"),
            closed_at=None if closed_at is None else _parse_time(closed_at),
            exit_price=None if exit_price is None else _number(exit_price, "exitPrice"),
        )
    except KeyError as e:
        raise RecordError(f"position record missing field {e.args[0]!r}") from e
    except ValueError as e:
        if isinstance(e, RecordError):
            raise
        raise RecordError(str(e)) from e


def _legacy_position(record: Any) -> Position:
    """Upgrade one version-0 trade: {id, symbol, name, type, price, quantity, timestamp, status, profit?}."""
    if not isinstance(record, dict):
        raise RecordError(f"legacy trade must be an object, got {type(record).__name__}")
    try:
        upgraded = {
            "id": record["id"],
            "symbol": record["symbol"],
            "name": record.get("name"),
            "side": record["type"],
            "entryPrice": record["price"],
            "quantity": record["quantity"],
            "openedAt": record["timestamp"],
            "status": record["status"],
        }
    except KeyError as e:
        raise RecordError(f"legacy trade missing field {e.args[0]!r}") from e
    if record.get("profit") is not None:
        upgraded["realizedProfit"] = record["profit"]
    return position_from_record(upgraded)


def encode_positions(positions: tuple[Position, ...] | list[Position]) -> dict[str, Any]:
    return {"version": SCHEMA_VERSION, "positions": [position_to_record(p) for p in positions]}


def encode_account(cash_balance: float) -> dict[str, Any]:
    return {"version": SCHEMA_VERSION, "cashBalance": cash_balance}


def decode_positions(payload: Any) -> tuple[Position, ...]:
    """Positions in execution order, from any supported schema version."""
    if isinstance(payload, list):
        # Version 0 stored most-recent-first.
        return tuple(_legacy_position(r) for r in reversed(payload))
    if not isinstance(payload, dict):
        raise RecordError(f"unexpected trades payload {type(payload).__name__}")
    version = payload.get("version")
    if version != SCHEMA_VERSION:
        raise RecordError(f"unsupported trades schema version {version!r}")
    records = payload.get("positions")
    if not isinstance(records, list):
        raise RecordError("trades record has no positions list")
    return tuple(position_from_record(r) for r in records)


def decode_account(payload: Any) -> float:
    if isinstance(payload, (int, float)) and not isinstance(payload, bool):
        return _number(payload, "balance")
    if not isinstance(payload, dict):
        raise RecordError(f"unexpected account payload {type(payload).__name__}")
    version = payload.get("version")
    if version != SCHEMA_VERSION:
        raise RecordError(f"unsupported account schema version {version!r}")
    return _number(payload.get("cashBalance"), "cashBalance")
