"""
Convert raw exchange kline rows into typed candles.

A row is kept only if all five numeric fields are present, parse as
finite decimals, and its open time is non-zero. Bad rows are dropped one at
a time; the rest of the batch is still returned.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .logs import log_error, log_trace, c_desc, c_var
from .models import Candle, RawCandle

NUMERIC_FIELDS = ("open", "high", "low", "close", "volume")


@dataclass
class RowFailure:
    row: RawCandle
    field: str
    value: str
    reason: str


@dataclass
class NormalizeResult:
    candles: List[Candle] = field(default_factory=list)
    discarded: int = 0
    failures: List[RowFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def _is_missing(row: RawCandle) -> bool:
    if not row.open_time_ms:
        return True
    return any(getattr(row, name) in ("", None) for name in NUMERIC_FIELDS)


def _parse_number(text: str) -> float:
    value = float(str(text).strip())
    if not math.isfinite(value):
        raise ValueError(f"non-finite value {text!r}")
    return value


def _parse_row(row: RawCandle) -> Tuple[Optional[Candle], Optional[RowFailure]]:
    values = {}
    for name in NUMERIC_FIELDS:
        raw_value = getattr(row, name)
        try:
            values[name] = _parse_number(raw_value)
        except (TypeError, ValueError) as exc:
            return None, RowFailure(row=row, field=name, value=str(raw_value), reason=str(exc))
    candle = Candle(open_time=int(row.open_time_ms) // 1000, **values)
    return candle, None


def normalize(rows: Iterable[RawCandle]) -> NormalizeResult:
    """
    Normalize rows in response order.
    """
    result = NormalizeResult()
    for row in rows:
        if _is_missing(row):
            log_trace(f"No value in rate {c_desc(row)}")
            result.discarded += 1
            continue

        candle, failure = _parse_row(row)
        if failure is not None:
            log_error(
                f"String to float error on {c_var(failure.field)}="
                f"{c_desc(repr(failure.value))} (open time {row.open_time_ms}): {failure.reason}"
            )
            result.failures.append(failure)
            result.discarded += 1
            continue

        result.candles.append(candle)
    return result
