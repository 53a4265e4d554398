import random
from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from poller import DecodeError, decode_samples
from samples import MockFeed, Sample, format_time, parse_time


def test_from_json_reads_all_fields(example_payload):
    sample = Sample.from_json(example_payload[1])
    assert sample.timestamp == pd.Timestamp("2024-01-01T00:00:05Z")
    assert sample.stressed is True
    assert sample.temperature == 23.1
    assert sample.heart_rate == 95.0


def test_from_json_accepts_zero_one_flags():
    item = {"time": "2024-01-01T00:00:00Z", "stressed": 1, "temp": 20, "hr": 60}
    assert Sample.from_json(item).stressed is True


@pytest.mark.parametrize(
    "item, error",
    [
        ({"stressed": False, "temp": 1.0, "hr": 1.0}, KeyError),
        ({"time": "not a time", "stressed": False, "temp": 1.0, "hr": 1.0}, ValueError),
        ({"time": "2024-01-01T00:00:00Z", "stressed": "yes", "temp": 1.0, "hr": 1.0}, TypeError),
        ({"time": "2024-01-01T00:00:00Z", "stressed": False, "temp": "hot", "hr": 1.0}, TypeError),
        ({"time": "2024-01-01T00:00:00Z", "stressed": False, "temp": 1.0, "hr": True}, TypeError),
        (["2024-01-01T00:00:00Z", False, 1.0, 1.0], TypeError),
    ],
)
def test_from_json_rejects_malformed(item, error):
    with pytest.raises(error):
        Sample.from_json(item)


def test_parse_time_epoch_millis():
    assert parse_time(1704067200000) == pd.Timestamp("2024-01-01T00:00:00Z")


@pytest.mark.parametrize("value", [1e300, 10**30, float("inf"), float("nan")])
def test_parse_time_out_of_range_is_value_error(value):
    with pytest.raises(ValueError):
        parse_time(value)


def test_decode_out_of_range_time_is_decode_error():
    item = {"time": 1e300, "stressed": False, "temp": 22.5, "hr": 70}
    with pytest.raises(DecodeError):
        decode_samples([item])


def test_parse_time_rejects_none():
    with pytest.raises(TypeError):
        parse_time(None)


def test_format_time_naive_is_local_wall_clock():
    assert format_time(pd.Timestamp("2024-01-01T13:04:05")) == "13:04:05"


def test_format_time_aware_converts_to_local():
    ts = pd.Timestamp("2024-01-01T13:04:05Z")
    expected = ts.to_pydatetime().astimezone().strftime("%H:%M:%S")
    assert format_time(ts) == expected


def test_to_json_keeps_wire_names(example_samples):
    assert example_samples[0].to_json() == {
        "time": "2024-01-01T00:00:00+00:00",
        "stressed": False,
        "temp": 22.5,
        "hr": 70.0,
    }


def test_mock_feed_rolls_window():
    feed = MockFeed(window=3, step_s=5.0, rng=random.Random(7))
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    windows = [feed.fetch(start) for _ in range(5)]

    assert [len(w) for w in windows] == [1, 2, 3, 3, 3]
    last = windows[-1]
    assert last[-1].timestamp == pd.Timestamp(start + timedelta(seconds=20))
    # chronological, evenly spaced
    gaps = {(b.timestamp - a.timestamp).total_seconds() for a, b in zip(last, last[1:])}
    assert gaps == {5.0}


def test_mock_feed_returns_copies():
    feed = MockFeed(window=5, rng=random.Random(1))
    first = feed.fetch()
    feed.fetch()
    assert len(first) == 1
