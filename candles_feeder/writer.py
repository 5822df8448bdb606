from typing import Dict, Sequence

import numpy as np

from .logs import log_trace, c_rows, c_symbol
from .models import Candle
from .store import BucketKey, SeriesStore


def build_columns(candles: Sequence[Candle]) -> Dict[str, np.ndarray]:
    """Column batch for one symbol: Epoch as int64 seconds, prices/volume as float64."""
    return {
        "Epoch": np.array([c.open_time for c in candles], dtype=np.int64),
        "Open": np.array([c.open for c in candles], dtype=np.float64),
        "High": np.array([c.high for c in candles], dtype=np.float64),
        "Low": np.array([c.low for c in candles], dtype=np.float64),
        "Close": np.array([c.close for c in candles], dtype=np.float64),
        "Volume": np.array([c.volume for c in candles], dtype=np.float64),
    }


def write_candles(store: SeriesStore, bucket: BucketKey, candles: Sequence[Candle]) -> int:
    """
    Persist one symbol's batch. Empty batches are skipped.
    StoreError propagates to the caller.
    """
    if not candles:
        log_trace(f"Nothing to write for {c_symbol(bucket)}")
        return 0
    written = store.write_batch(bucket, build_columns(candles), overwrite=False)
    log_trace(f"Wrote {c_rows(written)} rows to {c_symbol(bucket)}")
    return written
