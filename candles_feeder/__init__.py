from .config import FeederConfig
from .feeder import BACKFILL_CANDLES, CandleFeeder, Phase, SchedulerState, StepReport
from .models import Candle, RawCandle, TimeWindow
from .timeframes import Timeframe, to_exchange_interval

__version__ = "0.1.0"
__all__ = [
    "BACKFILL_CANDLES",
    "Candle",
    "CandleFeeder",
    "FeederConfig",
    "Phase",
    "RawCandle",
    "SchedulerState",
    "StepReport",
    "TimeWindow",
    "Timeframe",
    "to_exchange_interval",
]
