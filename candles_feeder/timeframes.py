"""
Timeframe labels, exchange interval tokens and interval alignment.

Labels follow the "<amount><unit>" convention of the series store
("1Min", "5Min", "1H", "1D", "1W"). The exchange wants a different
spelling of the same interval ("1m", "5m", "1h", "1d", "1w").
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigError
from .logs import log_warn, c_var

# ----------------------------------------------------------------------
# UNIT DEFINITIONS
# ----------------------------------------------------------------------
# unit suffix -> (exchange suffix, unit duration in ms)
TIMEFRAME_UNITS = {
    "Min": ("m", 60_000),
    "H": ("h", 3_600_000),
    "D": ("d", 86_400_000),
    "W": ("w", 604_800_000),
}

DEFAULT_TIMEFRAME = "1Min"

# Exchange weekly candles open on Monday 00:00 UTC; the epoch fell on a Thursday.
WEEK_ANCHOR_MS = -3 * 86_400_000

QUERY_START_LAYOUTS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d",
)

_LABEL_RE = re.compile(r"^\s*([0-9]*)\s*([A-Za-z]+)\s*$")


def _split_label(label: str) -> Optional[Tuple[int, str]]:
    match = _LABEL_RE.match(label)
    if not match:
        return None
    digits, unit = match.groups()
    amount = int(digits) if digits else 1
    return amount, unit


@dataclass(frozen=True)
class Timeframe:
    """
    One candle interval.

    `duration_ms` is what window arithmetic uses; `exchange_interval` is the
    token sent to the exchange. Both derive from the same parse, so they can
    never disagree.
    """
    label: str
    amount: int
    unit: str
    duration_ms: int

    @classmethod
    def parse(cls, label: object) -> "Timeframe":
        """
        Parse a label such as "5Min". Anything unrecognized falls back to
        DEFAULT_TIMEFRAME with a warning; this never raises.
        """
        parsed = _split_label(label) if isinstance(label, str) else None
        if parsed is not None:
            amount, unit = parsed
            if unit in TIMEFRAME_UNITS and amount > 0:
                _, unit_ms = TIMEFRAME_UNITS[unit]
                return cls(f"{amount}{unit}", amount, unit, amount * unit_ms)

        log_warn(
            f"Interval format incorrect: {c_var(repr(label))}. "
            f"Setting timeframe to default {c_var(DEFAULT_TIMEFRAME)}"
        )
        return cls(DEFAULT_TIMEFRAME, 1, "Min", TIMEFRAME_UNITS["Min"][1])

    @property
    def exchange_interval(self) -> str:
        return f"{self.amount}{TIMEFRAME_UNITS[self.unit][0]}"

    def floor(self, ts_ms: int) -> int:
        """
        Start of the interval containing `ts_ms`.

        For 1Min / 1H / 1D this is the same as zeroing the seconds, minutes
        or hours of the UTC wall clock. Weeks are anchored to Monday.
        """
        anchor = WEEK_ANCHOR_MS if self.unit == "W" else 0
        return ((int(ts_ms) - anchor) // self.duration_ms) * self.duration_ms + anchor

    def __str__(self) -> str:
        return self.label


def to_exchange_interval(label: object) -> str:
    """Translate a store label ("5Min") into the exchange token ("5m")."""
    return Timeframe.parse(label).exchange_interval


def resolve_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Unknown timezone: {name!r}") from exc


def parse_query_start(text: str, tz_name: str = "UTC") -> int:
    """
    Parse a configured start time into epoch milliseconds.

    Naive values are interpreted in `tz_name`.
    """
    tz = resolve_timezone(tz_name)
    value = (text or "").strip()
    for layout in QUERY_START_LAYOUTS:
        try:
            dt = datetime.strptime(value, layout)
        except ValueError:
            continue
        return int(dt.replace(tzinfo=tz).timestamp() * 1000)
    raise ConfigError(f"Invalid query_start format: {text!r}")
