from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class RawCandle:
    """
    One kline row as the exchange returns it.
    Numeric fields are decimal text; empty strings mean "missing".
    """
    open_time_ms: int
    open: str
    high: str
    low: str
    close: str
    volume: str


@dataclass(frozen=True)
class Candle:
    """
    Holds a single candle's OHLCV data. `open_time` is epoch seconds.
    """
    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def open_time_ms(self) -> int:
        return self.open_time * 1000

    @property
    def datetime(self) -> datetime:
        return datetime.fromtimestamp(self.open_time, tz=timezone.utc)

    def __str__(self) -> str:
        dt_str = self.datetime.strftime("%Y-%m-%d %H:%M")
        return (f"{self.open_time} {dt_str} :: "
                f"o={self.open},h={self.high},l={self.low},c={self.close},v={self.volume}")


@dataclass(frozen=True)
class TimeWindow:
    start_ms: int
    end_ms: int

    def __post_init__(self):
        if self.end_ms < self.start_ms:
            raise ValueError(f"TimeWindow end {self.end_ms} is before start {self.start_ms}")

    @property
    def span_ms(self) -> int:
        return self.end_ms - self.start_ms

    @property
    def is_empty(self) -> bool:
        return self.end_ms == self.start_ms


@dataclass(frozen=True)
class Instrument:
    """An exchange listing as reported by the symbol catalog."""
    symbol: str
    base_asset: str
    quote_asset: str
    status: str
