"""Sensor samples: the model, JSON decoding, time labels and a mock feed."""
from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pandas as pd
from pandas.errors import OutOfBoundsDatetime

import dashboard_config as cfg


@dataclass(frozen=True)
class Sample:
    """One time-stamped reading."""

    timestamp: pd.Timestamp
    stressed: bool
    temperature: float
    heart_rate: float

    @classmethod
    def from_json(cls, item: Dict[str, Any]) -> "Sample":
        """Build a sample from one ``{time, stressed, temp, hr}`` element.

        Raises KeyError, TypeError or ValueError when the element does not
        have the expected shape.
        """
        if not isinstance(item, dict):
            raise TypeError(f"expected an object, got {type(item).__name__}")
        return cls(
            timestamp=parse_time(item["time"]),
            stressed=_flag(item["stressed"]),
            temperature=_number(item["temp"], "temp"),
            heart_rate=_number(item["hr"], "hr"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "time": self.timestamp.isoformat(),
            "stressed": self.stressed,
            "temp": self.temperature,
            "hr": self.heart_rate,
        }


def parse_time(value: Any) -> pd.Timestamp:
    # Numbers are epoch milliseconds, like a JS Date
    if isinstance(value, bool):
        raise TypeError("time must be a timestamp string or epoch milliseconds")
    if not isinstance(value, (int, float, str)):
        raise TypeError(f"unparseable time: {value!r}")
    try:
        if isinstance(value, str):
            ts = pd.to_datetime(value)
        else:
            ts = pd.to_datetime(value, unit="ms", utc=True)
    except (OverflowError, OutOfBoundsDatetime) as e:
        raise ValueError(f"time out of range: {value!r}") from e
    if ts is None or pd.isna(ts):
        raise ValueError(f"unparseable time: {value!r}")
    return ts


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise TypeError(f"stressed must be a boolean, got {value!r}")


def _number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number, got {value!r}")
    return float(value)


def format_time(ts: pd.Timestamp, fmt: str = cfg.TIME_FORMAT) -> str:
    """Local wall-clock label for the time axis. Naive timestamps are taken as local."""
    dt = ts.to_pydatetime()
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt.strftime(fmt)


# ----------------------------- Mock feed ----------------------------- #

class MockFeed:
    """Produces a rolling sample window locally, one new sample per fetch.

    Stands in for the ``/data`` endpoint when ``DATA_SOURCE == "Mock"``.
    """

    def __init__(self, window: int = cfg.MOCK_WINDOW, step_s: float = cfg.MOCK_STEP_S,
                 rng: Optional[random.Random] = None):
        self.window = window
        self.step_s = step_s
        self.rng = rng or random.Random()
        self.samples: List[Sample] = []

    def _next(self, now: datetime) -> Sample:
        # Small random walks to look alive
        def jitt(v: float, spread: float) -> float:
            return v + self.rng.uniform(-spread, spread)

        if self.samples:
            prev = self.samples[-1]
            temp = jitt(prev.temperature, 0.15)
            hr = max(40.0, jitt(prev.heart_rate, 4.0))
        else:
            temp = jitt(36.6, 0.3)
            hr = jitt(72.0, 5.0)

        return Sample(
            timestamp=pd.Timestamp(now),
            stressed=hr > 95.0 or temp > 37.5,
            temperature=round(temp, 2),
            heart_rate=round(hr, 1),
        )

    def fetch(self, now: Optional[datetime] = None) -> List[Sample]:
        now = now or datetime.now(timezone.utc)
        if self.samples:
            last = self.samples[-1].timestamp.to_pydatetime()
            now = max(now, last + timedelta(seconds=self.step_s))
        self.samples.append(self._next(now))
        if len(self.samples) > self.window:
            del self.samples[: len(self.samples) - self.window]
        return list(self.samples)
