"""Pydantic schemas for events, telemetry, commands and the HTTP API layer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from models.records import FanSpeed, HvacMode, Severity


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class AlarmEvent(BaseModel):
    """An alarm raised against a device; ``end_time`` is set only when cleared."""

    id: str = Field(default_factory=_new_id)
    device_id: str
    severity: Severity
    message: str
    start_time: datetime = Field(default_factory=_utcnow)
    end_time: Optional[datetime] = None

    @property
    def active(self) -> bool:
        return self.end_time is None


class TelemetryPoint(BaseModel):
    """One timestamped metric observation."""

    device_id: str
    metric: str
    value: float
    unit: str
    timestamp: datetime = Field(default_factory=_utcnow)


class DeviceState(BaseModel):
    """Snapshot of an actuator's configuration and derived status."""

    device_id: str
    status: str = "Active"
    properties: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)


class ControlCommand(BaseModel):
    """Fields shared by every command addressed to a device."""

    target_id: str = Field(..., min_length=1)
    correlation_id: str = Field(default_factory=_new_id)


class SetTemperatureCommand(ControlCommand):
    verb: Literal["SetTemperature"] = "SetTemperature"
    setpoint: float


class SetFanSpeedCommand(ControlCommand):
    verb: Literal["SetFanSpeed"] = "SetFanSpeed"
    speed: FanSpeed

    @field_validator("speed", mode="before")
    @classmethod
    def parse_speed(cls, value: Any) -> FanSpeed:
        if not isinstance(value, (str, FanSpeed)):
            raise ValueError("speed must be a string")
        return FanSpeed.parse(value)


class GenericCommand(ControlCommand):
    """A command whose verb the monitor does not recognise."""

    verb: str = Field(..., min_length=1)
    args: Dict[str, Any] = Field(default_factory=dict)


Command = Union[SetTemperatureCommand, SetFanSpeedCommand, GenericCommand]


class CommandRequest(BaseModel):
    """Untyped command payload as received over the wire."""

    target_id: str
    verb: str
    args: Dict[str, Any] = Field(default_factory=dict)
    correlation_id: Optional[str] = None


class CommandAccepted(BaseModel):
    correlation_id: str
    accepted: bool = Field(
        ..., description="False when the command targeted a different device."
    )


class ReadingView(BaseModel):
    timestamp: datetime
    room_id: str
    temperature: float
    humidity: float
    co2: float


class ComfortView(BaseModel):
    temperature_score: float
    humidity_score: float
    co2_score: float
    composite: float = Field(..., ge=0.0, le=100.0)


class HvacView(BaseModel):
    device_id: str
    setpoint: float = Field(..., ge=16.0, le=30.0)
    fan_speed: FanSpeed
    mode: HvacMode
    current_temperature: Optional[float] = None


class MonitorSnapshot(BaseModel):
    """Consistent view of the monitor state taken under its lock."""

    module_id: str
    room_id: str
    running: bool
    reading: Optional[ReadingView] = None
    comfort: Optional[ComfortView] = None
    hvac: HvacView


class TelemetrySnapshot(BaseModel):
    points: List[TelemetryPoint] = Field(default_factory=list)
    states: List[DeviceState] = Field(default_factory=list)


class TelemetryHistory(BaseModel):
    history_size: Optional[int] = Field(
        None, description="Maximum number of points retained across all metrics."
    )
    points: List[TelemetryPoint] = Field(default_factory=list)
