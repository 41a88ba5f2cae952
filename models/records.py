"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class FanSpeed(str, Enum):
    """Discrete HVAC fan speeds."""

    off = "Off"
    low = "Low"
    medium = "Medium"
    high = "High"

    @classmethod
    def parse(cls, value: object) -> "FanSpeed":
        """Resolve a fan speed by name, ignoring case and surrounding whitespace."""
        if isinstance(value, cls):
            return value
        candidate = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == candidate:
                return member
        raise ValueError(f"Invalid fan speed: {value!r}")


class HvacMode(str, Enum):
    idle = "Idle"
    heating = "Heating"
    cooling = "Cooling"


class Severity(str, Enum):
    info = "Info"
    warning = "Warning"
    critical = "Critical"


class AlarmCategory(str, Enum):
    """Environmental conditions that are debounced independently."""

    temperature = "Temperature"
    humidity = "Humidity"
    co2 = "CO2"


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A single room observation parsed from the sample file."""

    timestamp: datetime
    room_id: str
    temperature: float
    humidity: float
    co2: float


@dataclass(frozen=True, slots=True)
class HvacState:
    """Snapshot of the HVAC actuator taken under the monitor lock."""

    setpoint: float
    fan_speed: FanSpeed
    mode: HvacMode
    current_temperature: Optional[float] = None
