from __future__ import annotations

import pytest

from app.schemas import GenericCommand, SetFanSpeedCommand, SetTemperatureCommand
from models.records import FanSpeed
from services.commands import CommandRejected, parse_command


def test_parse_set_temperature_lifts_args() -> None:
    command = parse_command(
        {
            "target_id": "Room101_HVAC",
            "verb": "SetTemperature",
            "args": {"setpoint": "23.5"},
            "correlation_id": "abc",
        }
    )

    assert isinstance(command, SetTemperatureCommand)
    assert command.setpoint == 23.5
    assert command.correlation_id == "abc"


def test_parse_generates_correlation_id_when_absent() -> None:
    first = parse_command({"target_id": "Room101_HVAC", "verb": "SetTemperature", "args": {"setpoint": 21}})
    second = parse_command({"target_id": "Room101_HVAC", "verb": "SetTemperature", "args": {"setpoint": 21}})

    assert first.correlation_id and second.correlation_id
    assert first.correlation_id != second.correlation_id


@pytest.mark.parametrize("speed, expected", [("Off", FanSpeed.off), ("LOW", FanSpeed.low), (" medium ", FanSpeed.medium)])
def test_parse_fan_speed_ignores_case(speed: str, expected: FanSpeed) -> None:
    command = parse_command({"target_id": "Room101_HVAC", "verb": "SetFanSpeed", "args": {"speed": speed}})

    assert isinstance(command, SetFanSpeedCommand)
    assert command.speed is expected


def test_unknown_verb_becomes_generic_command() -> None:
    command = parse_command({"target_id": "Room101_HVAC", "verb": "OpenWindow", "args": {"percent": 40}})

    assert isinstance(command, GenericCommand)
    assert command.verb == "OpenWindow"
    assert command.args == {"percent": 40}


def test_args_cannot_override_target() -> None:
    command = parse_command(
        {
            "target_id": "Room101_HVAC",
            "verb": "SetTemperature",
            "args": {"setpoint": 22, "target_id": "Room999_HVAC"},
        }
    )

    assert command.target_id == "Room101_HVAC"


@pytest.mark.parametrize(
    "payload, fragment",
    [
        ({"target_id": "Room101_HVAC", "verb": "SetTemperature", "args": {}}, "setpoint"),
        ({"target_id": "Room101_HVAC", "verb": "SetTemperature", "args": {"setpoint": "warm"}}, "setpoint"),
        ({"target_id": "Room101_HVAC", "verb": "SetFanSpeed", "args": {"speed": "Turbo"}}, "speed"),
        ({"target_id": "Room101_HVAC", "verb": "SetFanSpeed", "args": {"speed": 3}}, "speed"),
        ({"verb": "SetFanSpeed", "args": {"speed": "Low"}}, "target_id"),
        ({"target_id": "Room101_HVAC", "verb": "SetTemperature", "args": ["22"]}, "args"),
    ],
)
def test_malformed_payloads_are_rejected(payload, fragment: str) -> None:
    with pytest.raises(CommandRejected, match=fragment):
        parse_command(payload)
