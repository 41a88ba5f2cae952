"""Collaborator contracts consumed by the environment monitor."""

from __future__ import annotations

from typing import Protocol

from app.schemas import AlarmEvent, DeviceState, TelemetryPoint
from models.records import SensorReading


class SampleSource(Protocol):
    """Produces one reading per call once initialized. Must not block."""

    @property
    def initialized(self) -> bool: ...

    def next_reading(self) -> SensorReading: ...


class AlarmSink(Protocol):
    """Fire-and-forget receiver of alarm events."""

    def raise_alarm(self, alarm: AlarmEvent) -> None: ...

    def clear_alarm(self, alarm_id: str) -> bool: ...


class TelemetrySink(Protocol):
    """Fire-and-forget receiver of metric points and device snapshots."""

    def publish_point(self, point: TelemetryPoint) -> None: ...

    def publish_state(self, state: DeviceState) -> None: ...
