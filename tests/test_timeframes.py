from datetime import datetime, timezone

import pytest

from candles_feeder.errors import ConfigError
from candles_feeder.timeframes import (
    Timeframe,
    WEEK_ANCHOR_MS,
    parse_query_start,
    resolve_timezone,
    to_exchange_interval,
)

from conftest import utc_ms


@pytest.mark.parametrize(
    "label, token, duration_ms",
    [
        ("1Min", "1m", 60_000),
        ("5Min", "5m", 300_000),
        ("15Min", "15m", 900_000),
        ("1H", "1h", 3_600_000),
        ("4H", "4h", 14_400_000),
        ("1D", "1d", 86_400_000),
        ("1W", "1w", 604_800_000),
    ],
)
def test_parse_known_labels(label, token, duration_ms):
    tf = Timeframe.parse(label)
    assert tf.label == label
    assert tf.exchange_interval == token
    assert tf.duration_ms == duration_ms
    assert to_exchange_interval(label) == token


def test_missing_amount_means_one():
    tf = Timeframe.parse("H")
    assert tf.label == "1H"
    assert tf.exchange_interval == "1h"


@pytest.mark.parametrize("label", ["7X", "", None, "0Min", "1min", "abc5"])
def test_unrecognized_labels_fall_back_to_one_minute(label, capsys):
    tf = Timeframe.parse(label)

    assert tf.label == "1Min"
    assert tf.exchange_interval == "1m"
    assert tf.duration_ms == 60_000
    out = capsys.readouterr().out
    assert "[WARNING]" in out
    assert "Interval format incorrect" in out


def test_str_is_label():
    assert str(Timeframe.parse("5Min")) == "5Min"


@pytest.mark.parametrize("label", ["1Min", "5Min", "1H", "1D"])
def test_floor_matches_wall_clock_truncation(label):
    tf = Timeframe.parse(label)
    ts = utc_ms(2023, 3, 14, 15, 9, 26) + 535
    floored = tf.floor(ts)

    dt = datetime.fromtimestamp(floored / 1000, tz=timezone.utc)
    assert floored <= ts < floored + tf.duration_ms
    assert dt.second == 0 and dt.microsecond == 0
    assert tf.floor(floored) == floored


def test_floor_examples():
    assert Timeframe.parse("1Min").floor(utc_ms(2023, 1, 1, 10, 0, 30)) == utc_ms(2023, 1, 1, 10, 0)
    assert Timeframe.parse("5Min").floor(utc_ms(2023, 1, 1, 10, 7, 59)) == utc_ms(2023, 1, 1, 10, 5)
    assert Timeframe.parse("1H").floor(utc_ms(2023, 1, 1, 10, 59, 59)) == utc_ms(2023, 1, 1, 10, 0)
    assert Timeframe.parse("1D").floor(utc_ms(2023, 1, 1, 23, 59)) == utc_ms(2023, 1, 1)


def test_week_floors_to_monday():
    tf = Timeframe.parse("1W")
    # 2023-01-05 is a Thursday, the week opened on Monday 2023-01-02
    assert tf.floor(utc_ms(2023, 1, 5, 12)) == utc_ms(2023, 1, 2)
    assert tf.floor(utc_ms(2023, 1, 2)) == utc_ms(2023, 1, 2)
    assert tf.floor(utc_ms(2023, 1, 1, 23, 59)) == utc_ms(2022, 12, 26)
    assert datetime.fromtimestamp(WEEK_ANCHOR_MS / 1000, tz=timezone.utc).weekday() == 0


@pytest.mark.parametrize(
    "text, expected",
    [
        ("2023-01-01 10:20:30", utc_ms(2023, 1, 1, 10, 20, 30)),
        ("2023-01-01T10:20:30", utc_ms(2023, 1, 1, 10, 20, 30)),
        ("2023-01-01 10:20", utc_ms(2023, 1, 1, 10, 20)),
        ("2023-01-01T10:20", utc_ms(2023, 1, 1, 10, 20)),
        ("2023-01-01", utc_ms(2023, 1, 1)),
        ("  2023-01-01  ", utc_ms(2023, 1, 1)),
    ],
)
def test_parse_query_start_layouts(text, expected):
    assert parse_query_start(text) == expected


def test_parse_query_start_uses_timezone():
    # Tokyo is UTC+9 with no DST
    assert parse_query_start("2023-01-01 09:00", "Asia/Tokyo") == utc_ms(2023, 1, 1, 0, 0)


@pytest.mark.parametrize("text", ["yesterday", "2023/01/01", "2023-13-01", ""])
def test_parse_query_start_rejects_garbage(text):
    with pytest.raises(ConfigError):
        parse_query_start(text)


def test_unknown_timezone():
    with pytest.raises(ConfigError):
        resolve_timezone("Mars/Olympus_Mons")
