"""
Simulator configuration.

Defaults suit a fresh practice account. SimulatorConfig.from_env() reads
TRADESIM_* environment variables; bad values raise ConfigError.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from tradesim_core.errors import ConfigError
from tradesim_core.ledger import DEFAULT_INITIAL_CAPITAL
from tradesim_core.validation import SellPolicy

ENV_INITIAL_CAPITAL = "TRADESIM_INITIAL_CAPITAL"
ENV_SELL_POLICY = "TRADESIM_SELL_POLICY"
ENV_STORAGE_DIR = "TRADESIM_STORAGE_DIR"
ENV_SEED = "TRADESIM_SEED"
ENV_HISTORY_DAYS = "TRADESIM_HISTORY_DAYS"


@dataclass(frozen=True)
class SimulatorConfig:
    """
    initial_capital: starting cash for a fresh ledger.
    sell_policy: how SELL orders are treated (see SellPolicy).
    storage_dir: directory for saved state; None keeps state in memory.
    seed: price feed seed; None draws fresh entropy.
    history_days: length of chart series.
    """

    initial_capital: float = DEFAULT_INITIAL_CAPITAL
    sell_policy: SellPolicy = SellPolicy.OPEN_SHORT
    storage_dir: Path | None = None
    seed: int | None = None
    history_days: int = 30

    def __post_init__(self) -> None:
        if not self.initial_capital > 0:
            raise ConfigError(f"initial_capital must be positive, got {self.initial_capital!r}")
        if self.history_days < 0:
            raise ConfigError(f"history_days must be >= 0, got {self.history_days!r}")
        try:
            object.__setattr__(self, "sell_policy", SellPolicy.parse(self.sell_policy))
        except ValueError as e:
            raise ConfigError(str(e)) from e
        if self.storage_dir is not None and not isinstance(self.storage_dir, Path):
            object.__setattr__(self, "storage_dir", Path(self.storage_dir))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SimulatorConfig":
        """Build from TRADESIM_* variables; unset ones keep their defaults."""
        env = os.environ if environ is None else environ
        kwargs: dict = {}
        if env.get(ENV_INITIAL_CAPITAL):
            kwargs["initial_capital"] = _parse(env[ENV_INITIAL_CAPITAL], float, ENV_INITIAL_CAPITAL)
        if env.get(ENV_SELL_POLICY):
            kwargs["sell_policy"] = env[ENV_SELL_POLICY]
        if env.get(ENV_STORAGE_DIR):
            kwargs["storage_dir"] = Path(env[ENV_STORAGE_DIR]).expanduser()
        if env.get(ENV_SEED):
            kwargs["seed"] = _parse(env[ENV_SEED], int, ENV_SEED)
        if env.get(ENV_HISTORY_DAYS):
            kwargs["history_days"] = _parse(env[ENV_HISTORY_DAYS], int, ENV_HISTORY_DAYS)
        return cls(**kwargs)


def _parse(raw: str, kind: type, name: str):
    try:
        return kind(raw.strip())
    except ValueError:
        raise ConfigError(f"{name}={raw!r} is not a valid {kind.__name__}") from None
