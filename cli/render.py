from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

_SEVERITY_COLORS = {
    "Critical": typer.colors.RED,
    "Warning": typer.colors.YELLOW,
    "Info": typer.colors.WHITE,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _fmt(value: Any, digits: int = 1) -> Any:
    if isinstance(value, float):
        return f"{value:.{digits}f}"
    return value


def render_state(payload: Dict[str, Any]) -> None:
    echo_heading("Room State")
    echo_key_values(
        [
            ("module_id", payload.get("module_id")),
            ("room_id", payload.get("room_id")),
            ("running", payload.get("running")),
        ]
    )

    reading = payload.get("reading") or {}
    typer.echo()
    echo_heading("Reading")
    if reading:
        echo_key_values(
            [
                ("timestamp", reading.get("timestamp")),
                ("temperature", _fmt(reading.get("temperature"))),
                ("humidity", _fmt(reading.get("humidity"))),
                ("co2", _fmt(reading.get("co2"), 0)),
            ]
        )
    else:
        typer.echo("No reading sampled yet.")

    comfort = payload.get("comfort") or {}
    if comfort:
        echo_key_values([("comfort_score", _fmt(comfort.get("composite")))])

    hvac = payload.get("hvac") or {}
    typer.echo()
    echo_heading("HVAC")
    echo_key_values(
        [
            ("device_id", hvac.get("device_id")),
            ("setpoint", _fmt(hvac.get("setpoint"))),
            ("fan_speed", hvac.get("fan_speed")),
            ("mode", hvac.get("mode")),
        ]
    )


def render_alarms(alarms: List[Dict[str, Any]]) -> None:
    echo_heading("Alarms")
    if not alarms:
        typer.echo("No alarms recorded.")
        return
    for alarm in alarms:
        severity = alarm.get("severity")
        state = "cleared" if alarm.get("end_time") else "active"
        typer.secho(
            f"  - [{severity}] {alarm.get('device_id')}: {alarm.get('message')} "
            f"({state}, id={alarm.get('id')})",
            fg=_SEVERITY_COLORS.get(severity),
        )
