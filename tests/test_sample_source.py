from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest

from services.sample_source import (
    CsvSampleSource,
    SampleSourceInvalid,
    SampleSourceNotFound,
    SampleSourceNotInitialized,
)

_HEADER = "Timestamp,RoomId,Temperature,Humidity,CO2\n"


def _write_csv(tmp_path: Path, body: str, name: str = "readings.csv") -> Path:
    path = tmp_path / name
    path.write_text(_HEADER + body, encoding="utf-8")
    return path


@pytest.fixture()
def three_rows(tmp_path: Path) -> Path:
    return _write_csv(
        tmp_path,
        "2025-10-29T09:00:00,Room101,22.5,45.0,450\n"
        "2025-10-29T09:00:02,Room101,22.6,45.2,455\n"
        "2025-10-29T09:00:04,Room101,22.7,45.1,460\n",
    )


def test_initialize_loads_all_rows(three_rows: Path) -> None:
    source = CsvSampleSource()

    source.initialize(three_rows)

    assert source.initialized is True
    assert len(source) == 3
    assert source.source_path == three_rows


def test_next_reading_parses_fields(three_rows: Path) -> None:
    source = CsvSampleSource()
    source.initialize(str(three_rows))

    reading = source.next_reading()

    assert reading.timestamp == datetime(2025, 10, 29, 9, 0, 0, tzinfo=timezone.utc)
    assert reading.room_id == "Room101"
    assert reading.temperature == pytest.approx(22.5)
    assert reading.humidity == pytest.approx(45.0)
    assert reading.co2 == pytest.approx(450.0)


def test_next_reading_wraps_to_first_row(three_rows: Path) -> None:
    source = CsvSampleSource()
    source.initialize(three_rows)

    readings = [source.next_reading() for _ in range(4)]

    assert [r.temperature for r in readings[:3]] == [22.5, 22.6, 22.7]
    assert readings[3] == readings[0]


def test_reset_rewinds_cursor(three_rows: Path) -> None:
    source = CsvSampleSource()
    source.initialize(three_rows)
    first = source.next_reading()
    source.next_reading()

    source.reset()

    assert source.next_reading() == first


def test_missing_file_raises_not_found(tmp_path: Path) -> None:
    source = CsvSampleSource()

    with pytest.raises(SampleSourceNotFound):
        source.initialize(tmp_path / "nonexistent.csv")
    with pytest.raises(FileNotFoundError):
        source.initialize("")
    assert source.initialized is False


def test_file_without_valid_rows_is_invalid(tmp_path: Path) -> None:
    path = _write_csv(tmp_path, "not-a-time,Room101,abc,45,400\n")
    source = CsvSampleSource()

    with pytest.raises(SampleSourceInvalid):
        source.initialize(path)
    assert source.initialized is False


def test_header_only_file_is_invalid(tmp_path: Path) -> None:
    path = _write_csv(tmp_path, "")

    with pytest.raises(ValueError):
        CsvSampleSource().initialize(path)


def test_malformed_rows_are_skipped_with_warning(tmp_path: Path, caplog) -> None:
    path = _write_csv(
        tmp_path,
        "2025-10-29T09:00:00,Room101,22.5,45.0,450\n"
        "2025-10-29T09:00:02,Room101,warm,45.2,455\n"
        "\n"
        "2025-10-29T09:00:04,Room101,22.7\n"
        "2025-10-29T09:00:06Z,Room101,22.8,45.3,470,extra\n",
    )
    source = CsvSampleSource()

    with caplog.at_level(logging.WARNING, logger="services.sample_source"):
        source.initialize(path)

    assert len(source) == 2
    assert [source.next_reading().temperature for _ in range(2)] == [22.5, 22.8]

    records = [r for r in caplog.records if r.name == "services.sample_source"]
    assert sorted(getattr(r, "row_number") for r in records) == [3, 5]
    assert any("invalid numeric value for temperature" in r.getMessage() for r in records)


def test_next_reading_before_initialize_raises() -> None:
    with pytest.raises(SampleSourceNotInitialized):
        CsvSampleSource().next_reading()


def test_concurrent_callers_see_each_reading_once_per_lap(tmp_path: Path) -> None:
    rows = "".join(
        f"2025-10-29T09:00:{i:02d},Room101,{20 + i / 10:.1f},45.0,{400 + i}\n"
        for i in range(40)
    )
    source = CsvSampleSource()
    source.initialize(_write_csv(tmp_path, rows))
    seen: list[float] = []
    seen_lock = threading.Lock()

    def worker() -> None:
        for _ in range(10):
            reading = source.next_reading()
            with seen_lock:
                seen.append(reading.co2)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert sorted(seen) == [float(400 + i) for i in range(40)]
