"""Looping sample source backed by a CSV file of room readings."""

from __future__ import annotations

import csv
import logging
import math
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import List, Optional, Sequence, Union

from models.records import SensorReading

logger = logging.getLogger(__name__)

FIELD_COUNT = 5


class SampleSourceNotFound(FileNotFoundError):
    """The backing sample file does not exist."""


class SampleSourceInvalid(ValueError):
    """The backing sample file holds no parseable readings."""


class SampleSourceNotInitialized(RuntimeError):
    pass


class CsvSampleSource:
    """Replays readings from ``timestamp,room_id,temperature,humidity,co2`` rows.

    All rows are parsed up front; ``next_reading`` then cycles through them
    forever, wrapping to the first row after the last one. The cursor is
    guarded by a lock so concurrent callers see every reading exactly once
    per lap.
    """

    def __init__(self) -> None:
        self._readings: List[SensorReading] = []
        self._cursor = 0
        self._lock = Lock()
        self._initialized = False
        self.source_path: Optional[Path] = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    def __len__(self) -> int:
        with self._lock:
            return len(self._readings)

    def initialize(self, source: Union[str, Path]) -> None:
        """Load and parse every row of ``source``, replacing any earlier data."""
        if not str(source).strip():
            raise SampleSourceNotFound("Sample file path is empty.")
        path = Path(source)
        if not path.is_file():
            raise SampleSourceNotFound(f"Sample file not found: {path}")

        try:
            with path.open("r", encoding="utf-8-sig", newline="") as handle:
                readings = self._parse_rows(csv.reader(handle), path)
        except UnicodeDecodeError as exc:
            raise SampleSourceInvalid(f"Sample file {path} is not valid UTF-8") from exc

        if not readings:
            raise SampleSourceInvalid(f"No valid readings found in sample file {path}")

        with self._lock:
            self._readings = readings
            self._cursor = 0
            self._initialized = True
            self.source_path = path

        logger.info(
            "Loaded %d readings",
            len(readings),
            extra={"source_path": str(path)},
        )

    def next_reading(self) -> SensorReading:
        with self._lock:
            if not self._initialized:
                raise SampleSourceNotInitialized(
                    "Sample source is not initialized. Call initialize() first."
                )
            reading = self._readings[self._cursor]
            self._cursor = (self._cursor + 1) % len(self._readings)
            return reading

    def reset(self) -> None:
        """Rewind the cursor to the first reading."""
        with self._lock:
            self._cursor = 0

    def _parse_rows(self, rows, path: Path) -> List[SensorReading]:
        readings: List[SensorReading] = []
        # Row 1 is the header and is never interpreted.
        for row_number, row in enumerate(rows, start=1):
            if row_number == 1:
                continue
            if not any(field.strip() for field in row):
                continue
            try:
                readings.append(self._parse_row(row))
            except ValueError as exc:
                logger.warning(
                    "Skipping row: %s",
                    exc,
                    extra={
                        "source_path": str(path),
                        "row_number": row_number,
                        "reason": str(exc),
                    },
                )
        return readings

    @classmethod
    def _parse_row(cls, row: Sequence[str]) -> SensorReading:
        if len(row) < FIELD_COUNT:
            raise ValueError(
                f"expected {FIELD_COUNT} fields "
                f"(timestamp,room_id,temperature,humidity,co2), got {len(row)}"
            )
        timestamp_raw, room_raw, temperature_raw, humidity_raw, co2_raw = (
            field.strip() for field in row[:FIELD_COUNT]
        )
        if not room_raw:
            raise ValueError("missing room_id")
        return SensorReading(
            timestamp=cls._parse_timestamp(timestamp_raw),
            room_id=room_raw,
            temperature=cls._parse_number(temperature_raw, "temperature"),
            humidity=cls._parse_number(humidity_raw, "humidity"),
            co2=cls._parse_number(co2_raw, "co2"),
        )

    @staticmethod
    def _parse_number(value: str, name: str) -> float:
        if not value:
            raise ValueError(f"missing {name}")
        try:
            parsed = float(value)
        except ValueError as exc:
            raise ValueError(f"invalid numeric value for {name}: {value!r}") from exc
        if not math.isfinite(parsed):
            raise ValueError(f"non-finite value for {name}: {value!r}")
        return parsed

    @staticmethod
    def _parse_timestamp(value: str) -> datetime:
        candidate = value.strip()
        if not candidate:
            raise ValueError("missing timestamp")

        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"

        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError as exc:
            raise ValueError(f"invalid timestamp: {value!r}") from exc

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)

        return parsed.astimezone(timezone.utc)
