"""Application layer for delta-append.

The application layer orchestrates domain logic to fulfill use cases.

Exports:
    AppendClient:
        - AppendClient: Main entry point for appending to a table
    Weather:
        - WEATHER_SCHEMA: Schema of the sample weather table
        - WeatherReading: One sample sensor reading
        - fetch_readings: Generate sample readings
        - readings_to_table: Columnar Arrow layout of readings
"""

from delta_append.application.append_client import AppendClient
from delta_append.application.weather import (
    WEATHER_SCHEMA,
    WeatherReading,
    fetch_readings,
    readings_to_table,
)

__all__ = [
    "AppendClient",
    "WEATHER_SCHEMA",
    "WeatherReading",
    "fetch_readings",
    "readings_to_table",
]
