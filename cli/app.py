from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_alarms, render_state


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for inspecting and steering the room environment monitor.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


def _report_command(payload: dict, state: CLIState) -> None:
    if payload.get("accepted"):
        typer.secho(
            f"Command accepted. correlation_id={payload.get('correlation_id')}",
            fg=typer.colors.GREEN,
        )
    else:
        typer.secho(
            f"Command ignored: {state.config.hvac_target_id} is not handled by this monitor.",
            fg=typer.colors.YELLOW,
        )


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Monitor API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    room: Optional[str] = typer.Option(
        None,
        "--room",
        "-r",
        help="Room whose HVAC device receives commands (defaults to CLI_ROOM_ID env or Room101).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, room_id=room, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("state")
def state_command(ctx: typer.Context) -> None:
    """Show the latest reading, comfort score and HVAC state."""
    state = _get_state(ctx)
    render_state(state.client.get_state())


@app.command("set-temperature")
def set_temperature_command(
    ctx: typer.Context,
    setpoint: float = typer.Argument(..., help="Target temperature in °C (16-30)."),
) -> None:
    """Change the HVAC setpoint."""
    state = _get_state(ctx)
    typer.echo(f"Setting {state.config.hvac_target_id} setpoint to {setpoint}°C ...")
    payload = state.client.send_command("SetTemperature", {"setpoint": setpoint})
    _report_command(payload, state)


@app.command("set-fan-speed")
def set_fan_speed_command(
    ctx: typer.Context,
    speed: str = typer.Argument(..., help="One of Off, Low, Medium, High."),
) -> None:
    """Change the HVAC fan speed."""
    state = _get_state(ctx)
    typer.echo(f"Setting {state.config.hvac_target_id} fan speed to {speed} ...")
    payload = state.client.send_command("SetFanSpeed", {"speed": speed})
    _report_command(payload, state)


@app.command("alarms")
def alarms_command(
    ctx: typer.Context,
    active: bool = typer.Option(False, "--active", help="Only show alarms that are not cleared."),
) -> None:
    """List alarms raised by the monitor."""
    state = _get_state(ctx)
    render_alarms(state.client.list_alarms(active_only=active))


@app.command("clear-alarm")
def clear_alarm_command(
    ctx: typer.Context,
    alarm_id: str = typer.Argument(..., help="Identifier shown by the alarms command."),
) -> None:
    """Mark an alarm as cleared."""
    state = _get_state(ctx)
    alarm = state.client.clear_alarm(alarm_id)
    typer.secho(f"Alarm {alarm.get('id')} cleared at {alarm.get('end_time')}", fg=typer.colors.GREEN)
