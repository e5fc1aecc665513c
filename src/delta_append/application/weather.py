"""Sample weather readings.

A time series of readings from a small temperature sensor, used by the
command-line tool when no input rows are given and by the tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import pyarrow as pa

from delta_append.domain.value_objects import TableSchema


WEATHER_SCHEMA = TableSchema.of(
    ("timestamp", "timestamp"),
    ("temp", "integer"),
    ("lat", "double"),
    ("long", "double"),
)

# Temperatures are in Fahrenheit
DEFAULT_TEMP = 72
DEFAULT_LAT = 39.61940984546992
DEFAULT_LONG = -119.22916208856955


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class WeatherReading:
    """One sensor reading."""

    timestamp: datetime = field(default_factory=_utcnow)
    temp: int = DEFAULT_TEMP
    lat: float = DEFAULT_LAT
    long: float = DEFAULT_LONG

    def to_row(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "temp": self.temp,
            "lat": self.lat,
            "long": self.long,
        }


def fetch_readings(count: int = 5) -> list[WeatherReading]:
    """Generate ``count`` readings whose temperature drops one degree each."""
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    return [WeatherReading(temp=DEFAULT_TEMP - i) for i in range(1, count + 1)]


def readings_to_table(readings: list[WeatherReading]) -> pa.Table:
    """Lay the readings out column by column in an Arrow table."""
    return pa.Table.from_arrays(
        [
            pa.array([r.timestamp for r in readings], type=pa.timestamp("us", tz="UTC")),
            pa.array([r.temp for r in readings], type=pa.int32()),
            pa.array([r.lat for r in readings], type=pa.float64()),
            pa.array([r.long for r in readings], type=pa.float64()),
        ],
        schema=WEATHER_SCHEMA.to_arrow(),
    )
