from candles_feeder.models import Candle, RawCandle
from candles_feeder.normalizer import normalize

from conftest import utc_ms

T0 = utc_ms(2023, 1, 1, 0, 0)
T1 = utc_ms(2023, 1, 1, 0, 1)
T2 = utc_ms(2023, 1, 1, 0, 2)


def _row(open_ms, open="1.5", high="2.0", low="1.0", close="1.75", volume="123.45"):
    return RawCandle(open_ms, open, high, low, close, volume)


def test_well_formed_rows():
    result = normalize([_row(T0), _row(T1, close="1.8")])

    assert result.ok
    assert result.discarded == 0
    assert result.candles == [
        Candle(T0 // 1000, 1.5, 2.0, 1.0, 1.75, 123.45),
        Candle(T1 // 1000, 1.5, 2.0, 1.0, 1.8, 123.45),
    ]


def test_open_time_is_epoch_seconds():
    candle = normalize([_row(T1)]).candles[0]
    assert candle.open_time == T1 // 1000
    assert candle.open_time_ms == T1
    assert candle.datetime.minute == 1


def test_missing_field_discards_only_that_row():
    result = normalize([_row(T0), _row(T1, volume=""), _row(T2)])

    assert [c.open_time_ms for c in result.candles] == [T0, T2]
    assert result.discarded == 1
    assert result.ok


def test_zero_open_time_is_missing():
    result = normalize([RawCandle(0, "", "", "", "", ""), _row(0), _row(T1)])

    assert [c.open_time_ms for c in result.candles] == [T1]
    assert result.discarded == 2


def test_unparseable_number_is_recorded_and_batch_continues(capsys):
    result = normalize([_row(T0), _row(T1, high="abc"), _row(T2)])

    assert [c.open_time_ms for c in result.candles] == [T0, T2]
    assert result.discarded == 1
    assert not result.ok
    failure = result.failures[0]
    assert failure.field == "high"
    assert failure.value == "abc"
    assert failure.row.open_time_ms == T1
    assert "String to float error" in capsys.readouterr().out


def test_non_finite_values_are_rejected():
    result = normalize([_row(T0, open="nan"), _row(T1, volume="inf"), _row(T2)])

    assert [c.open_time_ms for c in result.candles] == [T2]
    assert [f.field for f in result.failures] == ["open", "volume"]


def test_surrounding_whitespace_is_tolerated():
    result = normalize([_row(T0, close=" 1.75 ")])
    assert result.candles[0].close == 1.75


def test_empty_input():
    result = normalize([])
    assert result.candles == []
    assert result.discarded == 0
    assert result.ok


def test_candle_str_shows_time_and_prices():
    candle = normalize([_row(T1)]).candles[0]
    assert str(candle) == f"{T1 // 1000} 2023-01-01 00:01 :: o=1.5,h=2.0,l=1.0,c=1.75,v=123.45"
