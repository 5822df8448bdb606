"""
Typed feeder configuration, validated once at construction.
"""

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .errors import ConfigError
from .logs import log_warn, c_var
from .sources import BINANCE_API_URL, HTTP_TIMEOUT_SECONDS
from .timeframes import DEFAULT_TIMEFRAME, Timeframe, parse_query_start, resolve_timezone

# Environment keys for sleep overrides (seconds)
ENV_ERROR_BACKOFF_KEY = "CANDLES_FEEDER_ERROR_BACKOFF_SECS"
ENV_PROBE_INTERVAL_KEY = "CANDLES_FEEDER_PROBE_INTERVAL_SECS"
ENV_BACKFILL_PAUSE_KEY = "CANDLES_FEEDER_BACKFILL_PAUSE_SECS"

DEFAULT_BASE_CURRENCY = "BNB"
DEFAULT_EXCHANGE = "BINANCE"
DEFAULT_DATA_DIR = "~/.candles_feeder"


def _env_seconds(key: str, fallback: float) -> float:
    """
    Priority: a valid non-negative number in the environment, else `fallback`.
    Unparseable environment values are ignored.
    """
    env_val = os.environ.get(key)
    if env_val:
        try:
            val = float(env_val)
            if val >= 0:
                return val
        except (ValueError, TypeError):
            pass  # fall back
    return fallback


@dataclass
class FeederConfig:
    symbols: List[str] = field(default_factory=list)
    base_currency: str = DEFAULT_BASE_CURRENCY
    query_start: Optional[str] = None
    base_timeframe: str = DEFAULT_TIMEFRAME
    timezone: str = "UTC"
    exchange: str = DEFAULT_EXCHANGE
    probe_symbol: Optional[str] = None
    api_url: str = BINANCE_API_URL
    request_timeout_seconds: float = HTTP_TIMEOUT_SECONDS
    error_backoff_seconds: float = 60.0
    probe_interval_seconds: float = 0.0  # back-to-back probe polls; request latency paces them
    backfill_pause_seconds: float = 1.0
    data_dir: str = DEFAULT_DATA_DIR
    verbose: bool = False

    def __post_init__(self):
        if isinstance(self.symbols, str):
            self.symbols = [s for s in self.symbols.replace(",", " ").split() if s]
        if not isinstance(self.symbols, (list, tuple)) or \
                not all(isinstance(s, str) and s.strip() for s in self.symbols):
            raise ConfigError(f"symbols must be non-empty strings: {self.symbols!r}")
        self.symbols = [s.strip().upper() for s in self.symbols]

        if not isinstance(self.base_currency, str) or not self.base_currency.strip():
            raise ConfigError("base_currency must be a non-empty string")
        self.base_currency = self.base_currency.strip().upper()
        self.exchange = (self.exchange or DEFAULT_EXCHANGE).strip().upper()
        if self.probe_symbol:
            self.probe_symbol = self.probe_symbol.strip().upper()

        resolve_timezone(self.timezone)
        self.timeframe = Timeframe.parse(self.base_timeframe or DEFAULT_TIMEFRAME)
        self.query_start_ms: Optional[int] = (
            parse_query_start(self.query_start, self.timezone) if self.query_start else None
        )

        self.error_backoff_seconds = _env_seconds(ENV_ERROR_BACKOFF_KEY, self.error_backoff_seconds)
        self.probe_interval_seconds = _env_seconds(ENV_PROBE_INTERVAL_KEY, self.probe_interval_seconds)
        self.backfill_pause_seconds = _env_seconds(ENV_BACKFILL_PAUSE_KEY, self.backfill_pause_seconds)
        for name in ("request_timeout_seconds", "error_backoff_seconds",
                     "probe_interval_seconds", "backfill_pause_seconds"):
            value = getattr(self, name)
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise ConfigError(f"{name} must be a number, got {value!r}")
            if value < 0:
                raise ConfigError(f"{name} must be >= 0, got {value}")
            setattr(self, name, value)

    @property
    def bucket_exchange(self) -> str:
        """Exchange part of bucket keys, e.g. "BINANCE_BNB"."""
        return f"{self.exchange}_{self.base_currency}"

    def pair(self, symbol: str) -> str:
        """Exchange pair for a base-asset symbol, e.g. "ETH" -> "ETHBNB"."""
        return f"{symbol}{self.base_currency}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FeederConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(k for k in data if k not in known)
        if unknown:
            log_warn(f"Ignoring unknown config keys: {c_var(', '.join(unknown))}")
        kwargs = {k: v for k, v in data.items() if k in known and v is not None}
        try:
            return cls(**kwargs)
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc

    @classmethod
    def from_file(cls, path: str) -> "FeederConfig":
        return cls.from_dict(read_config_file(path))


def read_config_file(path: str) -> Dict[str, Any]:
    """Raw JSON object from a config file."""
    p = Path(os.path.expanduser(path))
    try:
        data = json.loads(p.read_text())
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {p}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {p}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {p} must contain a JSON object")
    return data
