"""Periodic room environment monitoring and HVAC command handling."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from app.schemas import (
    AlarmEvent,
    Command,
    ComfortView,
    DeviceState,
    HvacView,
    MonitorSnapshot,
    ReadingView,
    SetFanSpeedCommand,
    SetTemperatureCommand,
    TelemetryPoint,
)
from datastore.alarm_log import build_default_alarm_log
from models.records import (
    AlarmCategory,
    FanSpeed,
    HvacMode,
    HvacState,
    SensorReading,
    Severity,
)
from services.commands import parse_command
from services.comfort import ComfortBreakdown, ComfortScorer
from services.ports import AlarmSink, SampleSource, TelemetrySink
from services.sample_source import CsvSampleSource
from settings import get_settings
from storage.telemetry_store import build_default_telemetry_store

logger = logging.getLogger(__name__)

MIN_SETPOINT = 16.0
MAX_SETPOINT = 30.0
DEFAULT_SETPOINT = 22.0
DEFAULT_FAN_SPEED = FanSpeed.medium
MODE_DEADBAND = 0.5

TEMPERATURE_ALARM_LOW = 18.0
TEMPERATURE_ALARM_HIGH = 26.0
HUMIDITY_ALARM_LOW = 30.0
HUMIDITY_ALARM_HIGH = 60.0
CO2_WARNING_LEVEL = 1000.0
CO2_CRITICAL_LEVEL = 1500.0

DEFAULT_INTERVAL_SECONDS = 2.0
DEFAULT_DEBOUNCE_SECONDS = 30.0
DEFAULT_STOP_TIMEOUT_SECONDS = 5.0

# (device suffix, metric, unit) for each published sensor metric.
_SENSOR_METRICS = (
    ("TempSensor", "Temperature", "°C"),
    ("HumiditySensor", "Humidity", "%"),
    ("CO2Sensor", "CO2", "ppm"),
)


class MissingArgumentError(ValueError):
    """A required constructor argument was missing or empty."""


class MonitorStateError(RuntimeError):
    """The monitor cannot perform the operation in its current state."""


@dataclass(frozen=True)
class ThresholdBreach:
    category: AlarmCategory
    severity: Severity
    message: str


def evaluate_thresholds(reading: SensorReading) -> List[ThresholdBreach]:
    """Return the breaches for ``reading`` in evaluation order.

    At most one CO2 breach is reported: critical takes precedence over warning.
    """
    breaches: List[ThresholdBreach] = []

    temperature = reading.temperature
    if temperature < TEMPERATURE_ALARM_LOW or temperature > TEMPERATURE_ALARM_HIGH:
        breaches.append(
            ThresholdBreach(
                AlarmCategory.temperature,
                Severity.warning,
                f"Temperature out of comfort range: {temperature:.1f}°C "
                f"(normal: {TEMPERATURE_ALARM_LOW:g}-{TEMPERATURE_ALARM_HIGH:g}°C)",
            )
        )

    humidity = reading.humidity
    if humidity < HUMIDITY_ALARM_LOW or humidity > HUMIDITY_ALARM_HIGH:
        breaches.append(
            ThresholdBreach(
                AlarmCategory.humidity,
                Severity.warning,
                f"Humidity out of comfort range: {humidity:.1f}% "
                f"(normal: {HUMIDITY_ALARM_LOW:g}-{HUMIDITY_ALARM_HIGH:g}%)",
            )
        )

    co2 = reading.co2
    if co2 > CO2_CRITICAL_LEVEL:
        breaches.append(
            ThresholdBreach(
                AlarmCategory.co2,
                Severity.critical,
                f"CO2 level critical: {co2:.0f} ppm (limit: {CO2_CRITICAL_LEVEL:g} ppm) "
                "- ventilation required",
            )
        )
    elif co2 > CO2_WARNING_LEVEL:
        breaches.append(
            ThresholdBreach(
                AlarmCategory.co2,
                Severity.warning,
                f"CO2 level elevated: {co2:.0f} ppm (limit: {CO2_WARNING_LEVEL:g} ppm)",
            )
        )

    return breaches


def derive_mode(temperature: Optional[float], setpoint: float) -> HvacMode:
    """Derive the HVAC mode from the room temperature relative to the setpoint."""
    if temperature is None:
        return HvacMode.idle
    difference = temperature - setpoint
    if abs(difference) < MODE_DEADBAND:
        return HvacMode.idle
    if difference >= MODE_DEADBAND:
        return HvacMode.cooling
    return HvacMode.heating


def _require_text(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise MissingArgumentError(f"{name} is required and must be a non-empty string.")
    return value


def _require(name: str, value: Any) -> Any:
    if value is None:
        raise MissingArgumentError(f"{name} is required.")
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EnvironmentMonitor:
    """Samples one room on a fixed interval, raises alarms and publishes telemetry.

    A single re-entrant lock guards the latest reading, the comfort score and
    the HVAC configuration; the background cycle, command handling and all
    accessors take it, so a published device state never mixes a new setpoint
    with a stale mode. Sink failures are logged and never escape a cycle.
    """

    def __init__(
        self,
        module_id: str,
        room_id: str,
        source: SampleSource,
        alarm_sink: AlarmSink,
        telemetry_sink: TelemetrySink,
        *,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT_SECONDS,
        scorer: Optional[ComfortScorer] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.module_id = _require_text("module_id", module_id)
        self.room_id = _require_text("room_id", room_id)
        self._source = _require("source", source)
        self._alarm_sink = _require("alarm_sink", alarm_sink)
        self._telemetry_sink = _require("telemetry_sink", telemetry_sink)
        if interval <= 0:
            raise ValueError("interval must be positive.")

        self._interval = interval
        self._debounce = timedelta(seconds=debounce_seconds)
        self._stop_timeout = stop_timeout
        self._scorer = scorer or ComfortScorer()
        self._clock = clock or _utcnow

        self._lock = threading.RLock()
        self._lifecycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self._reading: Optional[SensorReading] = None
        self._comfort: Optional[ComfortBreakdown] = None
        self._setpoint = DEFAULT_SETPOINT
        self._fan_speed = DEFAULT_FAN_SPEED
        self._last_raised: Dict[AlarmCategory, datetime] = {}

        self._log_context = {"module_id": self.module_id, "room_id": self.room_id}

    @property
    def hvac_device_id(self) -> str:
        return f"{self.room_id}_HVAC"

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and not self._stop_event.is_set()

    # Lifecycle

    def start(self) -> None:
        """Begin the periodic cycle on a background thread.

        Raises ``MonitorStateError`` when the sample source is not initialized.
        Calling ``start`` on a running monitor does nothing.
        """
        with self._lifecycle_lock:
            if self._thread is not None and self._thread.is_alive():
                logger.debug("Monitor already running", extra=self._log_context)
                return
            if not self._source.initialized:
                raise MonitorStateError("Sample source is not initialized.")

            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(stop_event,),
                name=f"{self.module_id}-{self.room_id}",
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            thread.start()
        logger.info("Monitor started", extra=self._log_context)

    def stop(self) -> None:
        """Signal the cycle to exit and wait up to ``stop_timeout`` for it."""
        with self._lifecycle_lock:
            thread = self._thread
            if thread is None:
                return
            self._stop_event.set()
            if thread is not threading.current_thread():
                thread.join(self._stop_timeout)
            if thread.is_alive():
                logger.warning(
                    "Monitor loop did not exit within %.1fs",
                    self._stop_timeout,
                    extra=self._log_context,
                )
            self._thread = None
        logger.info("Monitor stopped", extra=self._log_context)

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            started = time.monotonic()
            try:
                self.run_cycle()
            except Exception:
                logger.exception("Error in monitor cycle", extra=self._log_context)
            remaining = self._interval - (time.monotonic() - started)
            # An overrunning cycle proceeds straight to the next one.
            if remaining > 0:
                stop_event.wait(remaining)

    # Cycle

    def run_cycle(self) -> None:
        """Sample, score, evaluate thresholds and publish, as one locked step."""
        with self._lock:
            self._sample()
            reading = self._reading
            if reading is None:
                logger.debug("No reading available; skipping cycle", extra=self._log_context)
                return

            self._comfort = self._scorer.breakdown(
                reading.temperature, reading.humidity, reading.co2
            )
            for breach in evaluate_thresholds(reading):
                self._raise_if_due(breach)
            self._publish_telemetry(reading, self._comfort)

    def _sample(self) -> None:
        try:
            self._reading = self._source.next_reading()
        except Exception as exc:
            logger.warning(
                "Failed to read sample; keeping previous values",
                extra={**self._log_context, "reason": str(exc)},
            )

    def _raise_if_due(self, breach: ThresholdBreach) -> None:
        now = self._clock()
        last_raised = self._last_raised.get(breach.category)
        if last_raised is not None and now - last_raised < self._debounce:
            logger.debug(
                "Alarm suppressed within debounce window",
                extra={**self._log_context, "alarm_key": breach.category},
            )
            return

        self._last_raised[breach.category] = now
        self._dispatch_alarm(
            AlarmEvent(
                device_id=f"{self.room_id}_{breach.category.value}",
                severity=breach.severity,
                message=breach.message,
                start_time=now,
            )
        )

    def _publish_telemetry(self, reading: SensorReading, comfort: ComfortBreakdown) -> None:
        timestamp = self._clock()
        values = (reading.temperature, reading.humidity, reading.co2)
        for (suffix, metric, unit), value in zip(_SENSOR_METRICS, values):
            self._dispatch_point(
                TelemetryPoint(
                    device_id=f"{self.room_id}_{suffix}",
                    metric=metric,
                    value=value,
                    unit=unit,
                    timestamp=timestamp,
                )
            )
        self._dispatch_point(
            TelemetryPoint(
                device_id=f"{self.room_id}_ComfortIndex",
                metric="ComfortIndex",
                value=comfort.composite,
                unit="score",
                timestamp=timestamp,
            )
        )
        self._publish_hvac_state()

    def _publish_hvac_state(self) -> None:
        with self._lock:
            hvac = self._hvac_state()
            state = DeviceState(
                device_id=self.hvac_device_id,
                status="Active",
                properties={
                    "Setpoint": hvac.setpoint,
                    "FanSpeed": hvac.fan_speed.value,
                    "CurrentTemp": hvac.current_temperature,
                    "Mode": hvac.mode.value,
                },
                timestamp=self._clock(),
            )
            try:
                self._telemetry_sink.publish_state(state)
            except Exception:
                logger.exception(
                    "Telemetry sink failed to accept device state", extra=self._log_context
                )

    def _dispatch_point(self, point: TelemetryPoint) -> None:
        try:
            self._telemetry_sink.publish_point(point)
        except Exception:
            logger.exception("Telemetry sink failed to accept point", extra=self._log_context)

    def _dispatch_alarm(self, alarm: AlarmEvent) -> None:
        try:
            self._alarm_sink.raise_alarm(alarm)
        except Exception:
            logger.exception(
                "Alarm sink failed to accept alarm",
                extra={**self._log_context, "alarm_id": alarm.id, "severity": alarm.severity},
            )

    # Commands

    def process_command(self, command: Union[Command, Mapping[str, Any]]) -> bool:
        """Apply an operator command addressed to this room's HVAC device.

        Returns False when the command targets another device, in which case
        nothing is validated, changed or published. A raw mapping for this
        device is validated and a malformed one raises ``CommandRejected``.
        """
        if isinstance(command, Mapping):
            if command.get("target_id") != self.hvac_device_id:
                logger.debug(
                    "Ignoring command for another device",
                    extra={
                        **self._log_context,
                        "verb": command.get("verb"),
                        "target_id": command.get("target_id"),
                    },
                )
                return False
            command = parse_command(command)

        extra = {
            **self._log_context,
            "verb": command.verb,
            "target_id": command.target_id,
            "correlation_id": command.correlation_id,
        }
        if command.target_id != self.hvac_device_id:
            logger.debug("Ignoring command for another device", extra=extra)
            return False

        try:
            if isinstance(command, SetTemperatureCommand):
                self._apply_setpoint(command.setpoint, extra)
            elif isinstance(command, SetFanSpeedCommand):
                self._apply_fan_speed(command.speed, extra)
            else:
                logger.info("Unknown command verb; ignoring", extra=extra)
        except Exception as exc:
            logger.exception("Failed to process command", extra=extra)
            self._dispatch_alarm(
                AlarmEvent(
                    device_id=self.hvac_device_id,
                    severity=Severity.warning,
                    message=f"Failed to process command '{command.verb}': {exc}",
                    start_time=self._clock(),
                )
            )
        return True

    def _apply_setpoint(self, setpoint: float, extra: Dict[str, Any]) -> None:
        with self._lock:
            # NaN fails both comparisons and is rejected here.
            if not MIN_SETPOINT <= setpoint <= MAX_SETPOINT:
                logger.warning(
                    "Rejected setpoint %s",
                    setpoint,
                    extra={**extra, "reason": "out of range"},
                )
                self._dispatch_alarm(
                    AlarmEvent(
                        device_id=self.hvac_device_id,
                        severity=Severity.warning,
                        message=(
                            f"Invalid setpoint: {setpoint}°C "
                            f"(valid range: {MIN_SETPOINT}-{MAX_SETPOINT}°C)"
                        ),
                        start_time=self._clock(),
                    )
                )
                return

            self._setpoint = float(setpoint)
            logger.info("Setpoint updated to %.1f°C", self._setpoint, extra=extra)
            self._publish_hvac_state()

    def _apply_fan_speed(self, speed: FanSpeed, extra: Dict[str, Any]) -> None:
        with self._lock:
            self._fan_speed = speed
            logger.info("Fan speed set to %s", speed.value, extra=extra)
            self._publish_hvac_state()

    # Accessors

    @property
    def temperature(self) -> Optional[float]:
        with self._lock:
            return self._reading.temperature if self._reading is not None else None

    @property
    def comfort_score(self) -> Optional[float]:
        with self._lock:
            return self._comfort.composite if self._comfort is not None else None

    @property
    def setpoint(self) -> float:
        with self._lock:
            return self._setpoint

    @property
    def fan_speed(self) -> FanSpeed:
        with self._lock:
            return self._fan_speed

    @property
    def last_reading(self) -> Optional[SensorReading]:
        with self._lock:
            return self._reading

    def hvac_state(self) -> HvacState:
        with self._lock:
            return self._hvac_state()

    def _hvac_state(self) -> HvacState:
        temperature = self._reading.temperature if self._reading is not None else None
        return HvacState(
            setpoint=self._setpoint,
            fan_speed=self._fan_speed,
            mode=derive_mode(temperature, self._setpoint),
            current_temperature=temperature,
        )

    def snapshot(self) -> MonitorSnapshot:
        with self._lock:
            reading = self._reading
            comfort = self._comfort
            hvac = self._hvac_state()
            return MonitorSnapshot(
                module_id=self.module_id,
                room_id=self.room_id,
                running=self.is_running,
                reading=(
                    ReadingView(
                        timestamp=reading.timestamp,
                        room_id=reading.room_id,
                        temperature=reading.temperature,
                        humidity=reading.humidity,
                        co2=reading.co2,
                    )
                    if reading is not None
                    else None
                ),
                comfort=(
                    ComfortView(
                        temperature_score=comfort.temperature_score,
                        humidity_score=comfort.humidity_score,
                        co2_score=comfort.co2_score,
                        composite=comfort.composite,
                    )
                    if comfort is not None
                    else None
                ),
                hvac=HvacView(
                    device_id=self.hvac_device_id,
                    setpoint=hvac.setpoint,
                    fan_speed=hvac.fan_speed,
                    mode=hvac.mode,
                    current_temperature=hvac.current_temperature,
                ),
            )


@lru_cache
def build_default_monitor() -> EnvironmentMonitor:
    """Factory that wires the monitor with the CSV source and in-memory sinks."""
    settings = get_settings()
    source = CsvSampleSource()
    source.initialize(settings.sample_file_path)
    return EnvironmentMonitor(
        module_id=settings.module_id,
        room_id=settings.room_id,
        source=source,
        alarm_sink=build_default_alarm_log(),
        telemetry_sink=build_default_telemetry_store(),
        interval=settings.sample_interval_seconds,
        debounce_seconds=settings.alarm_debounce_seconds,
        stop_timeout=settings.stop_timeout_seconds,
    )
