from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from candles_feeder.config import FeederConfig
from candles_feeder.errors import FetchError
from candles_feeder.models import RawCandle
from candles_feeder.sources import CandleSource
from candles_feeder.store import MemorySeriesStore

MINUTE_MS = 60_000
HOUR_MS = 3_600_000


def utc_ms(*args) -> int:
    """utc_ms(2023, 1, 1, 10, 0, 5) -> epoch milliseconds."""
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


class FakeClock:
    """
    Deterministic clock: waiting advances time instantly.
    `on_wait(seconds, clock)` may return True to request a stop.
    """

    def __init__(self, now_ms: int, on_wait: Optional[Callable[[float, "FakeClock"], bool]] = None):
        self.now = int(now_ms)
        self.waits: List[float] = []
        self.on_wait = on_wait

    def now_ms(self) -> int:
        return self.now

    def wait(self, seconds, stop_event) -> bool:
        self.waits.append(seconds)
        self.now += int(round(seconds * 1000))
        if self.on_wait is not None and self.on_wait(seconds, self):
            stop_event.set()
        return stop_event.is_set()


class MarketSource(CandleSource):
    """
    Simulated exchange. A candle opening at t is visible once
    now >= t + publish_delay_ms; the newest visible candle is still open.
    """

    def __init__(self, clock: FakeClock, interval_ms: int = MINUTE_MS, publish_delay_ms: int = 0):
        self.clock = clock
        self.interval_ms = interval_ms
        self.publish_delay_ms = publish_delay_ms
        self.calls: List[Tuple[str, str, Optional[int], Optional[int], int]] = []
        self.failures: Dict[str, int] = {}
        self.overrides: Dict[Tuple[str, int], Dict[str, str]] = {}

    def fail(self, pair: str, times: int = 1) -> None:
        self.failures[pair] = times

    def override(self, pair: str, open_ms: int, **fields) -> None:
        self.overrides[(pair, open_ms)] = fields

    def calls_for(self, pair: str):
        return [c for c in self.calls if c[0] == pair]

    def fetch_candles(self, pair, interval, start_ms=None, end_ms=None, limit=1000):
        self.calls.append((pair, interval, start_ms, end_ms, limit))
        if self.failures.get(pair, 0) > 0:
            self.failures[pair] -= 1
            raise FetchError(f"{pair}: simulated outage")

        iv = self.interval_ms
        visible_until = self.clock.now_ms() - self.publish_delay_ms
        last_open = (visible_until // iv) * iv
        hi = last_open if end_ms is None else min(last_open, end_ms)
        if start_ms is None:
            first = hi - (limit - 1) * iv
        else:
            first = -(-start_ms // iv) * iv

        rows = []
        t = first
        while t <= hi and len(rows) < limit:
            price = 100 + (t // iv) % 50
            fields = {
                "open": f"{price}",
                "high": f"{price + 1}",
                "low": f"{price - 1}",
                "close": f"{price + 0.5}",
                "volume": "10.5",
            }
            fields.update(self.overrides.get((pair, t), {}))
            rows.append(RawCandle(t, **fields))
            t += iv
        return rows


def make_config(**kwargs) -> FeederConfig:
    defaults = dict(
        symbols=["ETH"],
        base_currency="BNB",
        base_timeframe="1Min",
        error_backoff_seconds=60,
        probe_interval_seconds=1,
        backfill_pause_seconds=0,
    )
    defaults.update(kwargs)
    return FeederConfig(**defaults)


@pytest.fixture
def store() -> MemorySeriesStore:
    return MemorySeriesStore()


@pytest.fixture(autouse=True)
def _clear_feeder_env(monkeypatch):
    for key in (
        "CANDLES_FEEDER_ERROR_BACKOFF_SECS",
        "CANDLES_FEEDER_PROBE_INTERVAL_SECS",
        "CANDLES_FEEDER_BACKFILL_PAUSE_SECS",
    ):
        monkeypatch.delenv(key, raising=False)
