"""
Series store interface, the two bundled stores, and checkpoint reading.

A store holds one ordered table per bucket. Rows are keyed by their
`Epoch` column (candle open time, epoch seconds), so writing the same
candle twice replaces it instead of duplicating it.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd

from .errors import StoreError
from .logs import log_info, log_warn, c_desc, c_symbol, fmt_ms

COLUMNS = ["Epoch", "Open", "High", "Low", "Close", "Volume"]
OHLCV_SCHEMA = "OHLCV"


@dataclass(frozen=True)
class BucketKey:
    """
    (exchange, symbol, timeframe, schema), e.g. ("BINANCE_BNB", "ETH", "1Min").
    Rendered as "BINANCE_BNB_ETH/1Min/OHLCV".
    """
    exchange: str
    symbol: str
    timeframe: str
    schema: str = OHLCV_SCHEMA

    @property
    def item(self) -> str:
        return f"{self.exchange}_{self.symbol}"

    @property
    def path(self) -> str:
        return f"{self.item}/{self.timeframe}/{self.schema}"

    def __str__(self) -> str:
        return self.path


class SeriesStore(ABC):

    @abstractmethod
    def last_row(self, bucket: BucketKey) -> Optional[Dict[str, float]]:
        """
        Most recent row of the bucket, or None when the bucket is empty.
        Raises StoreError if the bucket cannot be read.
        """
        raise NotImplementedError

    @abstractmethod
    def write_batch(self, bucket: BucketKey, columns: Mapping[str, np.ndarray], overwrite: bool = False) -> int:
        """
        Write a column batch. Returns the number of rows written.
        Raises StoreError on failure.
        """
        raise NotImplementedError


def _validate_columns(columns: Mapping[str, np.ndarray]) -> int:
    missing = [c for c in COLUMNS if c not in columns]
    if missing:
        raise StoreError(f"Column batch missing columns: {missing}")
    lengths = {len(columns[c]) for c in COLUMNS}
    if len(lengths) != 1:
        raise StoreError(f"Column batch has ragged columns: {sorted(lengths)}")
    return lengths.pop()


class MemorySeriesStore(SeriesStore):
    """Dict-backed store; handy for tests and dry runs."""

    def __init__(self):
        self._buckets: Dict[BucketKey, Dict[int, Dict[str, float]]] = {}

    def last_row(self, bucket: BucketKey) -> Optional[Dict[str, float]]:
        rows = self._buckets.get(bucket)
        if not rows:
            return None
        return dict(rows[max(rows)])

    def write_batch(self, bucket: BucketKey, columns: Mapping[str, np.ndarray], overwrite: bool = False) -> int:
        n = _validate_columns(columns)
        if overwrite or bucket not in self._buckets:
            self._buckets[bucket] = {}
        rows = self._buckets[bucket]
        for i in range(n):
            epoch = int(columns["Epoch"][i])
            rows[epoch] = {c: (epoch if c == "Epoch" else float(columns[c][i])) for c in COLUMNS}
        return n

    def rows(self, bucket: BucketKey) -> List[Dict[str, float]]:
        """All rows of a bucket ordered by Epoch."""
        stored = self._buckets.get(bucket, {})
        return [dict(stored[k]) for k in sorted(stored)]

    def buckets(self) -> Iterable[BucketKey]:
        return list(self._buckets)


class CsvSeriesStore(SeriesStore):
    """
    One CSV file per bucket:

        {root}/{EXCHANGE_SYMBOL}/{TIMEFRAME}/{SCHEMA}.csv

    Writes merge with what is on disk, drop duplicate epochs (newest wins)
    and keep the file sorted. A batch made only of epochs newer than the
    file's last row is appended instead, so realtime writes do not rewrite
    the whole history.
    """

    def __init__(self, root: str):
        self.root = Path(os.path.expanduser(root))
        # newest Epoch per file, as last written or read through this store
        self._last_epoch: Dict[Path, int] = {}

    def _path(self, bucket: BucketKey) -> Path:
        path = (self.root / bucket.item / bucket.timeframe / f"{bucket.schema}.csv").resolve()
        try:
            path.relative_to(self.root.resolve())
        except ValueError:
            raise StoreError(f"Bucket {bucket} resolves outside of {self.root}")
        return path

    def _read_last_row(self, path: Path) -> Optional[Dict[str, float]]:
        if not path.exists():
            return None
        try:
            df = pd.read_csv(path)
            if df.empty:
                return None
            last = df.sort_values("Epoch").iloc[-1]
            row = {c: float(last[c]) for c in COLUMNS}
        except (OSError, KeyError, ValueError) as exc:
            raise StoreError(f"Failed to read {path}: {exc}") from exc
        row["Epoch"] = int(last["Epoch"])
        self._last_epoch[path] = row["Epoch"]
        return row

    def last_row(self, bucket: BucketKey) -> Optional[Dict[str, float]]:
        return self._read_last_row(self._path(bucket))

    def _can_append(self, path: Path, new: pd.DataFrame) -> bool:
        epochs = new["Epoch"]
        if new.empty or not path.exists():
            return False
        if not (epochs.is_monotonic_increasing and epochs.is_unique):
            return False
        if path not in self._last_epoch and self._read_last_row(path) is None:
            return False
        return int(epochs.iloc[0]) > self._last_epoch[path]

    def write_batch(self, bucket: BucketKey, columns: Mapping[str, np.ndarray], overwrite: bool = False) -> int:
        n = _validate_columns(columns)
        path = self._path(bucket)
        new = pd.DataFrame({c: columns[c] for c in COLUMNS})
        new["Epoch"] = new["Epoch"].astype("int64")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if not overwrite and self._can_append(path, new):
                new[COLUMNS].to_csv(path, mode="a", header=False, index=False)
                self._last_epoch[path] = int(new["Epoch"].iloc[-1])
                return n
            if path.exists() and not overwrite:
                old = pd.read_csv(path)
                merged = pd.concat([old, new], ignore_index=True)
            else:
                merged = new
            merged = (
                merged.astype({"Epoch": "int64"})
                .drop_duplicates(subset="Epoch", keep="last")
                .sort_values("Epoch")
            )
            merged[COLUMNS].to_csv(path, index=False)
        except (OSError, KeyError, ValueError) as exc:
            self._last_epoch.pop(path, None)
            raise StoreError(f"Failed to write {path}: {exc}") from exc
        if merged.empty:
            self._last_epoch.pop(path, None)
        else:
            self._last_epoch[path] = int(merged["Epoch"].iloc[-1])
        return n


# ----------------------------------------------------------------------
# CHECKPOINTS
# ----------------------------------------------------------------------
def last_timestamp(store: SeriesStore, bucket: BucketKey) -> int:
    """
    Epoch seconds of the newest persisted candle, or 0 if there is none
    (or the store could not be read).
    """
    try:
        row = store.last_row(bucket)
    except StoreError as exc:
        log_warn(f"Could not read checkpoint for {c_symbol(bucket)}: {c_desc(exc)}")
        return 0
    if not row:
        return 0
    return int(row["Epoch"])


def resume_point(checkpoints: Mapping[str, int]) -> int:
    """
    Earliest non-zero checkpoint (epoch seconds), or 0 if no symbol has one.
    Resuming from the earliest one means no symbol's history is skipped.
    """
    found = [ts for ts in checkpoints.values() if ts]
    return min(found) if found else 0


def read_checkpoints(store: SeriesStore, buckets: Mapping[str, BucketKey]) -> Dict[str, int]:
    checkpoints: Dict[str, int] = {}
    for symbol, bucket in buckets.items():
        ts = last_timestamp(store, bucket)
        checkpoints[symbol] = ts
        shown = fmt_ms(ts * 1000) if ts else "none"
        log_info(f"lastTimestamp for {c_symbol(symbol)} = {shown}")
    return checkpoints
