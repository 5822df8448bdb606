"""
Backfill / realtime scheduler.

Backfilling:
- Walk forward from the resume point in windows of BACKFILL_CANDLES
  candles, writing every symbol for each window.
- The first window that reaches "now" is the last one. It is clipped to the
  start of the current interval so the still-open candle is not written, and
  the feeder switches to realtime (exactly once).

Realtime (strict close):
- A candle is trusted only once the *next* interval's row is observed for
  the probe symbol. Wall-clock time alone never closes a candle.
- After the probe confirms the close, every symbol is fetched from the
  cursor to now and anything at or after the current boundary is dropped.
- Sleep until the next boundary and repeat.

Every symbol keeps its own cursor. A fetch failure for one symbol leaves
that symbol's cursor in place (it is retried, paged, on the next step) and
does not move anyone else's.
"""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .config import FeederConfig
from .errors import ConfigError, FetchError, StoreError
from .logs import (
    log_error, log_info, log_success, log_trace, log_update, log_warn,
    c_desc, c_rows, c_symbol, c_var, fmt_ms,
)
from .models import TimeWindow
from .normalizer import normalize
from .sources import CandleSource, KLINES_LIMIT
from .store import BucketKey, SeriesStore, read_checkpoints, resume_point
from .writer import write_candles

# Candles per backfill window (and per request page)
BACKFILL_CANDLES = 300


class Phase(Enum):
    BACKFILLING = "backfilling"
    REALTIME = "realtime"


@dataclass
class SchedulerState:
    phase: Phase
    cursor_ms: int
    last_realtime_boundary_ms: Optional[int] = None
    symbol_cursors: Dict[str, int] = field(default_factory=dict)
    transitions: int = 0


@dataclass
class SymbolReport:
    symbol: str
    written: int = 0
    discarded: int = 0
    parse_failures: int = 0
    trimmed: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class StepReport:
    phase: Phase
    window: Optional[TimeWindow] = None
    boundary_ms: Optional[int] = None
    symbols: Dict[str, SymbolReport] = field(default_factory=dict)
    transitioned: bool = False
    stopped: bool = False


class SystemClock:
    """Wall clock; waits are interruptible through the stop event."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)

    def wait(self, seconds: float, stop_event: threading.Event) -> bool:
        """Sleep up to `seconds`. Returns True if a stop was requested."""
        if seconds <= 0:
            return stop_event.is_set()
        return stop_event.wait(seconds)


class CandleFeeder:
    """
    Ingests candles for `symbols` into `store`, forever, until stopped.

    Construct once with a validated FeederConfig, then call run() (blocking)
    or drive it step by step with step().
    """

    def __init__(
        self,
        config: FeederConfig,
        source: CandleSource,
        store: SeriesStore,
        symbols: Sequence[str],
        clock: Optional[SystemClock] = None,
        stop_event: Optional[threading.Event] = None,
    ):
        if not symbols:
            raise ConfigError("No symbols to feed")
        self.config = config
        self.source = source
        self.store = store
        self.symbols: List[str] = list(symbols)
        self.clock = clock or SystemClock()
        self._stop = stop_event or threading.Event()

        self.timeframe = config.timeframe
        self.interval = self.timeframe.exchange_interval
        self.probe_symbol = config.probe_symbol or self.symbols[0]
        self.buckets: Dict[str, BucketKey] = {
            s: BucketKey(config.bucket_exchange, s, self.timeframe.label) for s in self.symbols
        }
        self.state: Optional[SchedulerState] = None

    # -----------------------------
    # Lifecycle
    # -----------------------------
    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def start(self) -> SchedulerState:
        """Read checkpoints and build the initial backfilling state."""
        checkpoints = read_checkpoints(self.store, self.buckets)
        cursor = self.initial_cursor(checkpoints)
        self.state = SchedulerState(
            phase=Phase.BACKFILLING,
            cursor_ms=cursor,
            symbol_cursors={s: cursor for s in self.symbols},
        )
        log_info(
            f"Feeding {c_rows(len(self.symbols))} symbols at {c_var(self.timeframe)} "
            f"({c_var(self.interval)}) from {fmt_ms(cursor)}"
        )
        return self.state

    def initial_cursor(self, checkpoints: Dict[str, int]) -> int:
        """
        Configured start, else the earliest checkpoint, else one interval ago.
        Always aligned to an interval start.
        """
        if self.config.query_start_ms is not None:
            start = self.config.query_start_ms
        else:
            resume = resume_point(checkpoints)
            if resume:
                start = resume * 1000
            else:
                start = self.clock.now_ms() - self.timeframe.duration_ms
        return self.timeframe.floor(start)

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """Run until the stop event is set."""
        if stop_event is not None:
            self._stop = stop_event
        if self.state is None:
            self.start()
        while not self.stopped:
            self.step()
        log_success("Feeder stopped.")

    def step(self) -> StepReport:
        """One scheduler iteration."""
        if self.state is None:
            self.start()
        if self.state.phase is Phase.BACKFILLING:
            return self._backfill_step()
        return self._realtime_step()

    # -----------------------------
    # Phases
    # -----------------------------
    def _backfill_step(self) -> StepReport:
        state = self.state
        duration = self.timeframe.duration_ms
        now = self.clock.now_ms()

        start = state.cursor_ms
        raw_end = start + BACKFILL_CANDLES * duration
        final = raw_end >= now
        end = max(start, min(raw_end, self.timeframe.floor(now))) if final else raw_end
        window = TimeWindow(start, end)

        report = StepReport(phase=Phase.BACKFILLING, window=window)
        if not window.is_empty:
            log_info(f"Backfilling {fmt_ms(window.start_ms)} → {fmt_ms(window.end_ms)}")
            report.symbols = self._cycle(window, confirmed_end_ms=end, trim_from_ms=None)
        state.cursor_ms = end

        if final:
            state.phase = Phase.REALTIME
            state.transitions += 1
            report.transitioned = True
            log_update(
                f"Backfill caught up at {fmt_ms(end)}, entering realtime mode "
                f"(one {c_var(self.timeframe)} candle per interval)."
            )
        else:
            report.stopped = self._wait(self.config.backfill_pause_seconds)
        report.stopped = report.stopped or self.stopped
        return report

    def _realtime_step(self) -> StepReport:
        state = self.state
        boundary = self.timeframe.floor(self.clock.now_ms())
        cursor = state.cursor_ms
        report = StepReport(phase=Phase.REALTIME, boundary_ms=boundary)

        if not self.wait_for_close(cursor, boundary):
            report.stopped = True
            return report

        window = TimeWindow(cursor, max(cursor, self.clock.now_ms()))
        report.window = window
        log_trace(f"Realtime window {fmt_ms(window.start_ms)} → {fmt_ms(window.end_ms)}")
        report.symbols = self._cycle(window, confirmed_end_ms=boundary, trim_from_ms=boundary)

        state.cursor_ms = boundary
        state.last_realtime_boundary_ms = boundary

        wake_at = boundary + self.timeframe.duration_ms
        report.stopped = self._wait_until(wake_at)
        return report

    def wait_for_close(self, cursor_ms: int, boundary_ms: int) -> bool:
        """
        Poll the probe symbol until a row opening at or after `boundary_ms`
        shows up, i.e. the candle before it has closed.
        Returns False if stopped first.

        Polls start one interval before the boundary (never before the
        cursor), so a cursor far behind cannot push the boundary row past
        the exchange's per-request limit. Catching up is left to the paged
        symbol sync.
        """
        pair = self.config.pair(self.probe_symbol)
        probe_from = max(cursor_ms, boundary_ms - self.timeframe.duration_ms)
        while not self.stopped:
            try:
                rows = self.source.fetch_candles(pair, self.interval, start_ms=probe_from)
            except FetchError as exc:
                log_error(f"Response error: {c_desc(exc)}")
                if self._wait(self.config.error_backoff_seconds):
                    return False
                continue

            if rows and rows[-1].open_time_ms >= boundary_ms:
                log_trace(f"Probe {c_symbol(self.probe_symbol)} saw {fmt_ms(rows[-1].open_time_ms)}")
                return True
            if self._wait(self.config.probe_interval_seconds):
                return False
        return False

    # -----------------------------
    # Fetch / normalize / write
    # -----------------------------
    def _cycle(
        self,
        window: TimeWindow,
        confirmed_end_ms: int,
        trim_from_ms: Optional[int],
    ) -> Dict[str, SymbolReport]:
        reports: Dict[str, SymbolReport] = {}
        for symbol in self.symbols:
            if self.stopped:
                break
            reports[symbol] = self._sync_symbol(symbol, window, confirmed_end_ms, trim_from_ms)
        return reports

    def _sync_symbol(
        self,
        symbol: str,
        window: TimeWindow,
        confirmed_end_ms: int,
        trim_from_ms: Optional[int],
    ) -> SymbolReport:
        """
        Fetch [symbol cursor, window end) in pages, write what is confirmed,
        and advance the symbol's cursor no further than `confirmed_end_ms`.
        Candles opening at or after `trim_from_ms` are never written.
        """
        report = SymbolReport(symbol)
        last_written = None
        cursors = self.state.symbol_cursors
        page_ms = BACKFILL_CANDLES * self.timeframe.duration_ms
        pair = self.config.pair(symbol)
        bucket = self.buckets[symbol]

        if cursors[symbol] >= confirmed_end_ms:
            return report
        if cursors[symbol] < window.start_ms:
            log_warn(f"{c_symbol(symbol)} is behind, catching up from {fmt_ms(cursors[symbol])}")

        page_start = cursors[symbol]
        while page_start < window.end_ms:
            page_end = min(page_start + page_ms, window.end_ms)
            try:
                rows = self.source.fetch_candles(
                    pair, self.interval, start_ms=page_start, end_ms=page_end - 1, limit=KLINES_LIMIT
                )
            except FetchError as exc:
                log_error(f"Response error: {c_desc(exc)}")
                log_info(f"Problematic symbol {c_symbol(symbol)}")
                report.error = str(exc)
                self._wait(self.config.error_backoff_seconds)
                return report

            result = normalize(rows)
            report.discarded += result.discarded
            report.parse_failures += len(result.failures)
            candles = result.candles
            if trim_from_ms is not None:
                kept = [c for c in candles if c.open_time_ms < trim_from_ms]
                report.trimmed += len(candles) - len(kept)
                candles = kept

            try:
                report.written += write_candles(self.store, bucket, candles)
                if candles:
                    last_written = candles[-1]
            except StoreError as exc:
                log_error(f"Write failed for {c_symbol(bucket)}: {c_desc(exc)}")
                report.error = str(exc)
                return report

            cursors[symbol] = max(cursors[symbol], min(page_end, confirmed_end_ms))
            page_start = page_end
            if self.stopped:
                break

        if last_written is not None:
            log_trace(f"{c_symbol(symbol)}: {c_rows(report.written)} candles written, last {last_written}")
        return report

    # -----------------------------
    # Suspension points
    # -----------------------------
    def _wait(self, seconds: float) -> bool:
        return self.clock.wait(seconds, self._stop)

    def _wait_until(self, target_ms: int) -> bool:
        remaining = (target_ms - self.clock.now_ms()) / 1000
        return self._wait(max(0.0, remaining))
